from enum import Enum


class Corridor(Enum):
    """
    路線（コリドー）

    Properties
    ----------
    id : str
        コリドーのID
    label : str
        表示名
    origin : str
        出発地
    destination : str
        到着地
    """

    BRV_OBRNICE = ("BRV_OBRNICE", "BRV", "Obrnice/Mělník")
    HAM_OBRNICE = ("HAM_OBRNICE", "HAM", "Obrnice/Mělník")
    BRV_MOSNOV = ("BRV_MOSNOV", "BRV", "Mošnov")
    HAM_MOSNOV = ("HAM_MOSNOV", "HAM", "Mošnov")

    def __init__(self, corridor_id: str, origin: str, destination: str):
        self._corridor_id = corridor_id
        self._origin = origin
        self._destination = destination

    @property
    def id(self):
        return self._corridor_id

    @property
    def origin(self):
        return self._origin

    @property
    def destination(self):
        return self._destination

    @property
    def label(self):
        return f"{self._origin} → {self._destination}"


class CapacityStatus(Enum):
    """
    空き状況

    Properties
    ----------
    label : str
        表示用ラベル
    style : str
        richで表示する際のスタイル
    """

    AVAILABLE = ("AVAILABLE", "Volno", "bold green")
    INQUIRY = ("INQUIRY", "Na dotaz", "bold yellow")
    FULL = ("FULL", "Plno", "bold red")

    def __init__(self, code: str, label: str, style: str):
        self._code = code
        self._label = label
        self._style = style

    @property
    def code(self):
        return self._code

    @property
    def label(self):
        return self._label

    @property
    def style(self):
        return self._style

    @classmethod
    def from_code(cls, code: str) -> "CapacityStatus | None":
        for status in cls:
            if status.code == code:
                return status
        return None
