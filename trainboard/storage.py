import json
import os
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Any, Iterable

from redis import Redis

from utils.make_logger import make_logger

from .trainrecord import TrainRecord


class BaseStorage(ABC):
    """
    レコード一覧を一つの値として保存するストレージの基底クラス。
    サブクラスは_readと_writeだけを実装すればよい。
    """

    name: str = "base"

    def __init__(self) -> None:
        self.logger = make_logger(type(self).__name__, context=self.name)

    @abstractmethod
    def _read(self) -> str | None:
        """
        保存されている値を読み込む。self.loadでラップするため、エラーハンドリングは不要。

        Returns
        -------
        str | None
            保存されている文字列。存在しない場合はNone。
        """
        pass

    @abstractmethod
    def _write(self, blob: str) -> None:
        """
        値を丸ごと上書きする。self.saveでラップするため、エラーハンドリングは不要。

        Parameters
        ----------
        blob : str
            保存するJSON文字列
        """
        pass

    def load(self) -> list[Any] | None:
        """
        保存されているレコード一覧を読み込む。

        Returns
        -------
        list[Any] | None
            JSON配列として読み込めた場合はそのリスト。
            存在しない、壊れている、配列でない場合はNone。
        """
        try:
            blob = self._read()
        except Exception:
            self.logger.error("Failed to read stored trains", exc_info=True)
            return None

        if blob is None:
            self.logger.info("No stored trains found")
            return None

        try:
            loaded = json.loads(blob)
        except ValueError as e:
            self.logger.warning(f"Stored trains are not valid JSON: {e}")
            return None

        if not isinstance(loaded, list):
            self.logger.warning("Stored trains are not a JSON array")
            return None

        return loaded

    def save(self, records: Iterable[TrainRecord]) -> bool:
        """
        レコード一覧を丸ごと保存する。失敗してもログに残すだけで例外は送出しない。

        Parameters
        ----------
        records : Iterable[TrainRecord]
            保存するレコード

        Returns
        -------
        bool
            保存に成功した場合はTrue
        """
        try:
            data = [r.to_dict() for r in records]
            self._write(json.dumps(data, ensure_ascii=False))
            self.logger.debug(f"Saved {len(data)} trains")
            return True
        except Exception:
            self.logger.error("Failed to save trains", exc_info=True)
            return False


@lru_cache(maxsize=1)
def _create_client() -> Redis | None:
    REDIS_HOST = os.getenv("UPSTASH_HOST")
    REDIS_PORT = os.getenv("UPSTASH_PORT") or 6379
    REDIS_PASS = os.getenv("UPSTASH_PASS")
    if not REDIS_HOST:
        return None
    return Redis(
        host=REDIS_HOST,
        port=int(REDIS_PORT),
        password=REDIS_PASS,
        ssl=os.getenv("UPSTASH_SSL", "True").lower() == "true",
        decode_responses=True,
    )


def get_redis_client() -> Redis | None:
    """
    Redisクライアントを作成。一度作成したらキャッシュする。
    Noneの場合はキャッシュクリア。

    Returns
    -------
    Redis | None
        Redisクライアントのインスタンス。ホストが未設定の場合はNone。
    """
    r = _create_client()
    if r is None:
        _create_client.cache_clear()
    return r


class RedisStorage(BaseStorage):
    name = "redis"

    def __init__(self, key: str, client: Redis | None = None) -> None:
        super().__init__()
        self.key = key
        self.client = client

    def _get_client(self) -> Redis:
        client = self.client or get_redis_client()
        if client is None:
            raise RuntimeError("Redis client is not available")
        return client

    def _read(self) -> str | None:
        return self._get_client().get(self.key)  # type: ignore[return-value]

    def _write(self, blob: str) -> None:
        self._get_client().set(self.key, blob)


class JsonFileStorage(BaseStorage):
    name = "file"

    def __init__(self, path: str) -> None:
        super().__init__()
        self.path = path

    def _read(self) -> str | None:
        if not os.path.exists(self.path):
            return None
        with open(self.path, encoding="utf-8") as f:
            return f.read()

    def _write(self, blob: str) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        # 書き込み途中で壊れないよう一時ファイル経由で置き換える
        tmp_path = self.path + ".tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(blob)
        os.replace(tmp_path, self.path)


class MemoryStorage(BaseStorage):
    name = "memory"

    def __init__(self, blob: str | None = None) -> None:
        super().__init__()
        self.blob = blob

    def _read(self) -> str | None:
        return self.blob

    def _write(self, blob: str) -> None:
        self.blob = blob


class NullStorage(BaseStorage):
    """永続化を無効にする場合のストレージ。何も読まず、書き込みは捨てる。"""

    name = "none"

    def _read(self) -> str | None:
        return None

    def _write(self, blob: str) -> None:
        pass
