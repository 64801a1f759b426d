import json
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Callable, Final

from enums import CapacityStatus, Corridor
from utils.make_logger import make_logger

from .errors import NotFoundError, ValidationError
from .seed import default_records
from .storage import BaseStorage, NullStorage
from .trainrecord import TrainRecord, format_departure, parse_departure

VALIDITY_WINDOW: Final[timedelta] = timedelta(hours=48)
DEFAULT_PUBLIC_LIMIT: Final[int] = 5
UPDATABLE_FIELDS: Final[frozenset] = frozenset({"corridor", "departure", "status"})

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TrainRecordStore:
    """
    列車レコードを管理するストア

    Attributes
    ----------
    storage : BaseStorage
        レコード一覧の保存先
    clock : Clock
        現在時刻を返す関数。テストでは固定の時刻を渡す。
    persistence_enabled : bool
        保存先が有効かどうか

    Methods
    -------
    open(storage, persistence_enabled, clock) -> TrainRecordStore
        保存先から読み込んでストアを作成する
    sweep() -> int
        48時間以内に出発するレコードを削除する
    list_trains(corridor) -> list[TrainRecord]
        コリドーで絞り込み、出発順に並べたレコードを返す
    list_public(corridor, limit) -> list[TrainRecord]
        公開用に件数を制限したレコードを返す
    add(corridor, departure, status) -> TrainRecord
        レコードを追加する
    update(record_id, **fields) -> TrainRecord
        レコードを更新する
    delete(record_id) -> bool
        レコードを削除する
    export_all() -> list[TrainRecord]
        すべてのレコードのコピーを返す
    import_replace(payload) -> list[TrainRecord]
        JSONからレコードを読み込み、すべて置き換える
    reset_to_default() -> list[TrainRecord]
        初期データに戻す
    """

    def __init__(
        self,
        storage: BaseStorage,
        records: list[TrainRecord],
        clock: Clock = utcnow,
    ) -> None:
        self.storage = storage
        self.clock = clock
        self.persistence_enabled = not isinstance(storage, NullStorage)
        self.logger = make_logger(type(self).__name__, context=storage.name)

        self._records: list[TrainRecord] = list(records)
        self._issued_ids: set[str] = set()

    @classmethod
    def open(
        cls,
        storage: BaseStorage | None = None,
        persistence_enabled: bool = True,
        clock: Clock = utcnow,
    ) -> "TrainRecordStore":
        """
        保存先からレコードを読み込んでストアを作成する。
        保存データがない、壊れている、配列でない場合は初期データを使う。

        Parameters
        ----------
        storage : BaseStorage | None, optional
            保存先。Noneまたはpersistence_enabledがFalseの場合はNullStorage。
        persistence_enabled : bool, optional
            保存を有効にするかどうか。デフォルトはTrue。
        clock : Clock, optional
            現在時刻を返す関数

        Returns
        -------
        TrainRecordStore
            作成したストア
        """
        if storage is None or not persistence_enabled:
            storage = NullStorage()

        loaded = storage.load()
        if loaded is None:
            records = default_records(clock())
            store = cls(storage, records, clock=clock)
            store.logger.info(f"Using {len(records)} default trains")
            return store

        records = [r for r in (TrainRecord.from_dict(d) for d in loaded) if r is not None]
        store = cls(storage, records, clock=clock)
        skipped = len(loaded) - len(records)
        if skipped:
            store.logger.warning(f"Skipped {skipped} malformed stored trains")
        store.logger.info(f"Loaded {len(records)} trains from {storage.name}")
        return store

    def _is_valid(self, departure: datetime | None, now: datetime | None = None) -> bool:
        if departure is None:
            return False
        now = now or self.clock()
        return departure - now > VALIDITY_WINDOW

    def _persist(self) -> bool:
        return self.storage.save(self._records)

    def _find_index(self, record_id: str) -> int:
        for i, record in enumerate(self._records):
            if record.id == record_id:
                return i
        raise NotFoundError(record_id)

    def _next_id(self) -> str:
        candidate = int(self.clock().timestamp() * 1000)
        used = {r.id for r in self._records} | self._issued_ids
        while str(candidate) in used:
            candidate += 1

        record_id = str(candidate)
        self._issued_ids.add(record_id)
        return record_id

    def _normalize_departure(self, departure: datetime | str) -> str:
        if isinstance(departure, datetime):
            parsed = departure if departure.tzinfo else departure.replace(tzinfo=timezone.utc)
        else:
            parsed = parse_departure(departure)
            if parsed is None:
                raise ValidationError(f"Invalid departure timestamp: {departure!r}")

        if not self._is_valid(parsed):
            raise ValidationError("Departure must be more than 48 hours from now")

        return format_departure(parsed)

    def sweep(self) -> int:
        """
        出発まで48時間以内（または日時を解析できない）レコードを削除する。
        削除があった場合のみ保存する。

        Returns
        -------
        int
            削除した件数
        """
        now = self.clock()
        kept = [r for r in self._records if self._is_valid(r.departure_at(), now)]
        removed = len(self._records) - len(kept)

        if removed:
            self._records = kept
            self.logger.info(f"Removed {removed} expired trains")
            self._persist()

        return removed

    def list_trains(self, corridor: Corridor | str | None = None) -> list[TrainRecord]:
        self.sweep()
        corridor_id = corridor.id if isinstance(corridor, Corridor) else corridor

        trains = [
            r for r in self._records if corridor_id is None or r.corridor == corridor_id
        ]
        # sweep後なのでdeparture_atはNoneにならない
        return sorted(trains, key=lambda r: r.departure_at())

    def list_public(
        self, corridor: Corridor | str, limit: int = DEFAULT_PUBLIC_LIMIT
    ) -> list[TrainRecord]:
        return self.list_trains(corridor)[: max(limit, 0)]

    def add(
        self,
        corridor: Corridor | str,
        departure: datetime | str,
        status: CapacityStatus | str = CapacityStatus.AVAILABLE,
    ) -> TrainRecord:
        """
        レコードを追加する。

        Parameters
        ----------
        corridor : Corridor | str
            コリドー
        departure : datetime | str
            出発日時。現在から48時間より後でなければならない。
        status : CapacityStatus | str, optional
            空き状況。デフォルトはAVAILABLE。

        Returns
        -------
        TrainRecord
            IDが割り当てられたレコード

        Raises
        ------
        ValidationError
            出発日時が48時間以内、または解析できない場合
        """
        record = TrainRecord(
            id=self._next_id(),
            corridor=corridor.id if isinstance(corridor, Corridor) else corridor,
            departure=self._normalize_departure(departure),
            status=status.code if isinstance(status, CapacityStatus) else status,
        )
        self._records.append(record)
        self.logger.info(f"Added train {record.id} ({record.corridor} {record.departure})")
        self._persist()
        return record

    def update(self, record_id: str, **fields) -> TrainRecord:
        """
        レコードを更新する。出発日時を変更する場合のみ48時間ルールを確認する。

        Parameters
        ----------
        record_id : str
            更新するレコードのID
        **fields
            corridor, departure, statusのいずれか

        Returns
        -------
        TrainRecord
            更新後のレコード

        Raises
        ------
        NotFoundError
            IDが存在しない場合
        ValidationError
            未知のフィールド、または出発日時が48時間以内の場合
        """
        index = self._find_index(record_id)

        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

        changes: dict[str, str] = {}
        if fields.get("departure") is not None:
            changes["departure"] = self._normalize_departure(fields["departure"])
        if fields.get("corridor") is not None:
            corridor = fields["corridor"]
            changes["corridor"] = corridor.id if isinstance(corridor, Corridor) else corridor
        if fields.get("status") is not None:
            status = fields["status"]
            changes["status"] = status.code if isinstance(status, CapacityStatus) else status

        updated = replace(self._records[index], **changes)
        self._records[index] = updated
        self.logger.info(f"Updated train {record_id} ({', '.join(changes) or 'no changes'})")
        self._persist()
        return updated

    def delete(self, record_id: str) -> bool:
        kept = [r for r in self._records if r.id != record_id]
        if len(kept) == len(self._records):
            self.logger.debug(f"Train {record_id} not found. Nothing to delete.")
            return False

        self._records = kept
        self.logger.info(f"Deleted train {record_id}")
        self._persist()
        return True

    def export_all(self) -> list[TrainRecord]:
        self.sweep()
        return list(self._records)

    def import_replace(self, payload: str) -> list[TrainRecord]:
        """
        JSON配列からレコードを読み込み、現在のレコードをすべて置き換える。
        形式が合わない要素は報告せずに捨てる。48時間ルールは確認しない。

        Parameters
        ----------
        payload : str
            JSON文字列

        Returns
        -------
        list[TrainRecord]
            読み込んだレコード

        Raises
        ------
        ValidationError
            JSONとして解析できない、配列でない、有効な要素が一つもない場合
        """
        try:
            parsed = json.loads(payload)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Import data is not valid JSON: {e}") from e

        if not isinstance(parsed, list):
            raise ValidationError("Import data must be an array of trains")

        records = [r for r in (TrainRecord.from_dict(d) for d in parsed) if r is not None]
        if not records:
            raise ValidationError("No valid trains in import data")

        skipped = len(parsed) - len(records)
        if skipped:
            self.logger.warning(f"Skipped {skipped} malformed trains during import")

        self._records = records
        self.logger.info(f"Imported {len(records)} trains")
        self._persist()
        return list(records)

    def reset_to_default(self) -> list[TrainRecord]:
        self._records = default_records(self.clock())
        self.logger.info("Reset trains to default data")
        self._persist()
        return list(self._records)
