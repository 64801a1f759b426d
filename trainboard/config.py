import os
from dataclasses import dataclass

from utils.make_logger import make_logger

from .storage import BaseStorage, JsonFileStorage, MemoryStorage, NullStorage, RedisStorage
from .store import DEFAULT_PUBLIC_LIMIT

logger = make_logger("config")

STORAGE_BACKENDS = ("redis", "file", "memory", "none")


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default

    try:
        return int(value)
    except ValueError:
        logger.warning(f"{name}={value!r} is not an integer. Using {default}.")
        return default


@dataclass(frozen=True)
class Settings:
    storage_backend: str = "file"
    storage_key: str = "captrain_trains"
    storage_file: str = os.path.join("data", "trains.json")
    public_limit: int = DEFAULT_PUBLIC_LIMIT
    refresh_interval: int = 60  # seconds
    debug: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        """
        環境変数から設定を読み込む。.envの読み込みは呼び出し側で行う。

        Returns
        -------
        Settings
            読み込んだ設定
        """
        backend = os.getenv("TRAINBOARD_STORAGE", cls.storage_backend).lower()
        if backend not in STORAGE_BACKENDS:
            logger.warning(f"Unknown storage backend {backend!r}. Using 'file'.")
            backend = "file"

        debug = os.getenv("DEBUG", "False").lower() == "true"
        interval = _get_int("TRAINBOARD_REFRESH_INTERVAL", cls.refresh_interval)

        return cls(
            storage_backend=backend,
            storage_key=os.getenv("TRAINBOARD_STORAGE_KEY") or cls.storage_key,
            storage_file=os.getenv("TRAINBOARD_STORAGE_FILE") or cls.storage_file,
            public_limit=_get_int("TRAINBOARD_PUBLIC_LIMIT", cls.public_limit),
            refresh_interval=10 if debug else max(interval, 1),
            debug=debug,
        )

    @property
    def persistence_enabled(self) -> bool:
        return self.storage_backend != "none"

    def create_storage(self) -> BaseStorage:
        match self.storage_backend:
            case "redis":
                return RedisStorage(self.storage_key)
            case "memory":
                return MemoryStorage()
            case "none":
                return NullStorage()
            case _:
                return JsonFileStorage(self.storage_file)
