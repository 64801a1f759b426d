from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

RECORD_FIELDS = ("id", "corridor", "departureTimestamp", "status")


@dataclass(frozen=True)
class TrainRecord:
    id: str
    corridor: str  # Corridor.id
    departure: str  # ISO-8601
    status: str  # CapacityStatus.code

    def departure_at(self) -> datetime | None:
        return parse_departure(self.departure)

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "corridor": self.corridor,
            "departureTimestamp": self.departure,
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "TrainRecord | None":
        """
        辞書からTrainRecordを生成する。形が合わない場合はNoneを返す。
        corridorはcorridorIdでも受け付ける。

        Parameters
        ----------
        data : Any
            JSONから読み込んだ要素

        Returns
        -------
        TrainRecord | None
            生成したレコード。必須フィールドが文字列でない場合はNone。
        """
        if not isinstance(data, dict):
            return None

        corridor = data.get("corridor", data.get("corridorId"))
        values = (data.get("id"), corridor, data.get("departureTimestamp"), data.get("status"))
        if not all(isinstance(v, str) for v in values):
            return None

        return cls(*values)


def parse_departure(value: str) -> datetime | None:
    """
    ISO-8601の文字列をタイムゾーン付きのdatetimeに変換する。
    タイムゾーンがない場合はUTCとみなす。解析できない場合はNoneを返す。
    """
    if not isinstance(value, str) or not value:
        return None

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_departure(value: datetime) -> str:
    """datetimeをUTCのISO-8601文字列（ミリ秒、末尾Z）に変換する。"""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    utc = value.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"
