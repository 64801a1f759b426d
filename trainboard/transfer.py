import json
import os
from datetime import datetime
from typing import Iterable

from utils.make_logger import make_logger

from .store import TrainRecordStore
from .trainrecord import TrainRecord

logger = make_logger("transfer")

EXPORT_PREFIX = "trainboard-export"


def dump_records(records: Iterable[TrainRecord]) -> str:
    return json.dumps([r.to_dict() for r in records], ensure_ascii=False, indent=2)


def export_filename(now: datetime) -> str:
    return f"{EXPORT_PREFIX}-{now:%Y-%m-%d}.json"


def write_export(store: TrainRecordStore, directory: str = ".") -> str:
    """
    すべてのレコードをJSONファイルに書き出す。

    Parameters
    ----------
    store : TrainRecordStore
        書き出すストア
    directory : str, optional
        出力先ディレクトリ。デフォルトはカレントディレクトリ。

    Returns
    -------
    str
        書き出したファイルのパス
    """
    records = store.export_all()
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, export_filename(store.clock()))

    with open(path, "w", encoding="utf-8") as f:
        f.write(dump_records(records))

    logger.info(f"Exported {len(records)} trains to {path}")
    return path


def read_import(store: TrainRecordStore, path: str) -> list[TrainRecord]:
    """
    JSONファイルを読み込み、ストアのレコードを置き換える。

    Raises
    ------
    ValidationError
        ファイルの内容が取り込めない場合
    OSError
        ファイルを読めない場合
    """
    with open(path, encoding="utf-8") as f:
        payload = f.read()

    records = store.import_replace(payload)
    logger.info(f"Imported {len(records)} trains from {path}")
    return records
