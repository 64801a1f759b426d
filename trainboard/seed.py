from datetime import datetime, time, timedelta, timezone
from typing import Final

from enums import CapacityStatus, Corridor

from .trainrecord import TrainRecord, format_departure

# (id, コリドー, 何日後, 出発時刻(UTC), 空き状況)
DEFAULT_TRAINS: Final[tuple] = (
    ("1", Corridor.BRV_OBRNICE, 3, time(8, 30), CapacityStatus.AVAILABLE),
    ("2", Corridor.BRV_OBRNICE, 4, time(14, 15), CapacityStatus.INQUIRY),
    ("3", Corridor.HAM_OBRNICE, 3, time(10, 0), CapacityStatus.FULL),
    ("4", Corridor.BRV_MOSNOV, 5, time(9, 45), CapacityStatus.AVAILABLE),
    ("5", Corridor.HAM_MOSNOV, 6, time(16, 20), CapacityStatus.INQUIRY),
)


def default_records(now: datetime) -> list[TrainRecord]:
    """
    初期データを作成する。
    出発日時はnowの日付からの相対日数で決まるため、作成直後に期限切れになることはない。

    Parameters
    ----------
    now : datetime
        基準となる現在時刻

    Returns
    -------
    list[TrainRecord]
        初期データのレコード
    """
    today = now.astimezone(timezone.utc).date()
    return [
        TrainRecord(
            id=record_id,
            corridor=corridor.id,
            departure=format_departure(
                datetime.combine(today + timedelta(days=days), at, tzinfo=timezone.utc)
            ),
            status=status.code,
        )
        for record_id, corridor, days, at, status in DEFAULT_TRAINS
    ]
