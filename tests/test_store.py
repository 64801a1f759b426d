import json
from datetime import datetime, timedelta, timezone

import pytest

from enums import CapacityStatus, Corridor
from trainboard.errors import NotFoundError, ValidationError
from trainboard.seed import default_records
from trainboard.storage import MemoryStorage, NullStorage
from trainboard.store import TrainRecordStore
from trainboard.trainrecord import TrainRecord, format_departure
from trainboard.transfer import dump_records

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def iso(hours: float, now: datetime = NOW) -> str:
    return format_departure(now + timedelta(hours=hours))


def record(record_id: str, corridor: Corridor, hours: float, status: str = "AVAILABLE") -> dict:
    return {
        "id": record_id,
        "corridor": corridor.id,
        "departureTimestamp": iso(hours),
        "status": status,
    }


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return MemoryStorage(
        json.dumps(
            [
                record("a", Corridor.BRV_OBRNICE, 100),
                record("b", Corridor.BRV_OBRNICE, 60, "FULL"),
                record("c", Corridor.HAM_MOSNOV, 72, "INQUIRY"),
                record("d", Corridor.BRV_OBRNICE, 80),
            ]
        )
    )


@pytest.fixture
def store(storage, clock):
    return TrainRecordStore.open(storage, clock=clock)


def stored_ids(storage: MemoryStorage) -> set[str]:
    return {d["id"] for d in json.loads(storage.blob)}


# open


def test_open_adopts_stored_array(store):
    assert {r.id for r in store.export_all()} == {"a", "b", "c", "d"}
    assert store.persistence_enabled


@pytest.mark.parametrize("blob", [None, "not json", '{"id": "1"}', "42"])
def test_open_falls_back_to_default(blob, clock):
    store = TrainRecordStore.open(MemoryStorage(blob), clock=clock)
    assert store.export_all() == default_records(NOW)


def test_open_drops_malformed_stored_elements(clock):
    blob = json.dumps([record("a", Corridor.BRV_MOSNOV, 100), {"id": 1}, "x"])
    store = TrainRecordStore.open(MemoryStorage(blob), clock=clock)
    assert [r.id for r in store.export_all()] == ["a"]


def test_open_without_persistence(storage, clock):
    store = TrainRecordStore.open(storage, persistence_enabled=False, clock=clock)
    assert isinstance(store.storage, NullStorage)
    assert not store.persistence_enabled
    assert store.export_all() == default_records(NOW)

    store.add(Corridor.BRV_MOSNOV, iso(72))
    assert "a" in stored_ids(storage)


# add


@pytest.mark.parametrize("hours", [-1, 0, 30, 48])
def test_add_rejects_departure_within_48_hours(store, hours):
    with pytest.raises(ValidationError):
        store.add(Corridor.BRV_MOSNOV, iso(hours))
    assert len(store.export_all()) == 4


def test_add_accepts_departure_after_48_hours(store, storage):
    departure = NOW + timedelta(hours=48, seconds=1)
    created = store.add(Corridor.BRV_MOSNOV, departure, CapacityStatus.FULL)

    assert created.corridor == "BRV_MOSNOV"
    assert created.status == "FULL"
    assert created.departure == format_departure(departure)
    assert created.id not in {"a", "b", "c", "d"}
    assert created.id in stored_ids(storage)


def test_add_rejects_unparsable_departure(store):
    with pytest.raises(ValidationError):
        store.add(Corridor.BRV_MOSNOV, "next tuesday")


def test_add_assigns_fresh_ids(store):
    first = store.add(Corridor.BRV_MOSNOV, iso(72))
    second = store.add(Corridor.BRV_MOSNOV, iso(73))
    assert first.id != second.id

    store.delete(first.id)
    third = store.add(Corridor.BRV_MOSNOV, iso(74))
    assert third.id not in {first.id, second.id}


def test_add_skips_ids_already_in_use(clock):
    taken = str(int(NOW.timestamp() * 1000))
    blob = json.dumps([record(taken, Corridor.HAM_MOSNOV, 90)])
    store = TrainRecordStore.open(MemoryStorage(blob), clock=clock)

    created = store.add(Corridor.HAM_MOSNOV, iso(72))
    assert created.id != taken


def test_add_keeps_memory_state_when_save_fails(clock):
    class BrokenStorage(MemoryStorage):
        def _write(self, blob: str) -> None:
            raise OSError("disk full")

    store = TrainRecordStore.open(BrokenStorage(), clock=clock)
    created = store.add(Corridor.HAM_OBRNICE, iso(72))
    assert created in store.export_all()


# list


def test_list_never_returns_trains_within_48_hours(store, clock, storage):
    clock.advance(hours=13)  # "b" is now 47h out

    trains = store.list_trains()
    assert "b" not in {t.id for t in trains}
    assert all(t.departure_at() - clock() > timedelta(hours=48) for t in trains)
    assert "b" not in stored_ids(storage)


def test_list_filters_by_corridor_and_sorts(store):
    trains = store.list_trains(Corridor.BRV_OBRNICE)
    assert [t.id for t in trains] == ["b", "d", "a"]
    assert store.list_trains("HAM_MOSNOV") == [t for t in store.list_trains() if t.id == "c"]
    assert store.list_trains(Corridor.HAM_OBRNICE) == []


def test_list_keeps_insertion_order_for_equal_departures(clock):
    blob = json.dumps(
        [record("x", Corridor.BRV_MOSNOV, 90), record("y", Corridor.BRV_MOSNOV, 90)]
    )
    store = TrainRecordStore.open(MemoryStorage(blob), clock=clock)
    assert [t.id for t in store.list_trains()] == ["x", "y"]


def test_sweep_removes_unparsable_departures(clock):
    blob = json.dumps(
        [
            record("ok", Corridor.BRV_MOSNOV, 90),
            {"id": "bad", "corridor": "BRV_MOSNOV", "departureTimestamp": "??", "status": "FULL"},
        ]
    )
    store = TrainRecordStore.open(MemoryStorage(blob), clock=clock)
    assert store.sweep() == 1
    assert store.sweep() == 0


def test_sweep_does_not_save_without_removals(store, storage):
    before = storage.blob
    store.list_trains()
    assert storage.blob == before


@pytest.mark.parametrize("limit", [0, 1, 2, 5])
def test_list_public_is_prefix_of_list(store, limit):
    full = store.list_trains(Corridor.BRV_OBRNICE)
    public = store.list_public(Corridor.BRV_OBRNICE, limit)
    assert len(public) <= limit
    assert public == full[:limit]


# update


def test_update_status_does_not_check_departure(store, clock, storage):
    clock.advance(hours=30)  # "c" is now 42h out

    updated = store.update("c", status=CapacityStatus.FULL)
    assert updated.status == "FULL"
    assert updated.departure == iso(72)
    assert json.loads(storage.blob)[2]["status"] == "FULL"


def test_update_rejects_departure_within_48_hours(store):
    before = store.list_trains(Corridor.HAM_MOSNOV)

    with pytest.raises(ValidationError):
        store.update("c", departure=iso(30), status="FULL")

    assert store.list_trains(Corridor.HAM_MOSNOV) == before


def test_update_replaces_fields(store):
    updated = store.update("a", corridor=Corridor.HAM_OBRNICE, departure=iso(200))
    assert updated == TrainRecord("a", "HAM_OBRNICE", iso(200), "AVAILABLE")
    assert store.list_trains(Corridor.HAM_OBRNICE) == [updated]


def test_update_unknown_id(store):
    with pytest.raises(NotFoundError):
        store.update("missing", status="FULL")


def test_update_unknown_field(store):
    with pytest.raises(ValidationError):
        store.update("a", id="b")


# delete


def test_delete(store, storage):
    assert store.delete("missing") is False
    assert len(store.export_all()) == 4

    assert store.delete("b") is True
    assert {r.id for r in store.export_all()} == {"a", "c", "d"}
    assert stored_ids(storage) == {"a", "c", "d"}


# import / export / reset


def test_import_drops_malformed_elements(store, storage):
    payload = json.dumps(
        [
            record("n1", Corridor.BRV_MOSNOV, 90),
            {"id": "n2", "corridorId": "HAM_MOSNOV", "departureTimestamp": iso(10), "status": "FULL"},
            {"id": 3, "corridor": "BRV_MOSNOV", "departureTimestamp": iso(90), "status": "FULL"},
        ]
    )

    imported = store.import_replace(payload)

    # 48時間ルールは取り込み時には確認しない
    assert [r.id for r in imported] == ["n1", "n2"]
    assert imported[1].corridor == "HAM_MOSNOV"
    assert stored_ids(storage) == {"n1", "n2"}


@pytest.mark.parametrize("payload", ["[]", '[1, "x", {"id": "1"}]', '{"id": "1"}', "{{"])
def test_import_rejects_payload_without_valid_trains(store, storage, payload):
    before = storage.blob

    with pytest.raises(ValidationError):
        store.import_replace(payload)

    assert {r.id for r in store.export_all()} == {"a", "b", "c", "d"}
    assert storage.blob == before


def test_export_then_import_roundtrip(store):
    store.add(Corridor.HAM_OBRNICE, iso(72), "INQUIRY")
    exported = store.export_all()

    store.reset_to_default()
    store.import_replace(dump_records(exported))

    assert set(store.export_all()) == set(exported)


def test_export_returns_copy(store):
    exported = store.export_all()
    exported.clear()
    assert len(store.export_all()) == 4


def test_reset_to_default(store, storage):
    store.import_replace(json.dumps([record("z", Corridor.BRV_MOSNOV, 90)]))

    restored = store.reset_to_default()

    assert restored == default_records(NOW)
    assert store.export_all() == default_records(NOW)
    assert stored_ids(storage) == {"1", "2", "3", "4", "5"}
