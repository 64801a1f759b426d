import os
from logging import DEBUG, INFO, FileHandler, Formatter, Logger, getLogger

from rich.logging import RichHandler

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))


def get_log_file_path() -> str:
    log_dir = os.getenv("TRAINBOARD_LOG_DIR") or os.path.join(PROJECT_ROOT, "logs")
    return os.path.join(log_dir, "trainboard.log")


def make_logger(name: str, context: str | None = None) -> Logger:
    """
    ロガーを作成する。同じ名前で二回目以降はハンドラを追加しない。

    Parameters
    ----------
    name : str
        ロガー名
    context : str | None, optional
        ロガー名の後ろに付けるコンテキスト（ストレージ名など）

    Returns
    -------
    Logger
        コンソール（rich）とファイルに出力するロガー
    """
    if context:
        name = rf"{name}\[{context}]"

    logger = getLogger(name)
    logger.setLevel(DEBUG)

    if not logger.handlers:
        rich_handler = RichHandler(
            rich_tracebacks=True,
            markup=True,
            show_path=False,
        )
        rich_handler.setLevel(DEBUG if os.getenv("DEBUG", "False").lower() == "true" else INFO)
        rich_handler.setFormatter(Formatter("[magenta]%(name)s[/magenta] %(message)s"))
        logger.addHandler(rich_handler)

        log_file_path = get_log_file_path()
        os.makedirs(os.path.dirname(log_file_path), exist_ok=True)
        file_handler = FileHandler(log_file_path, mode="a", encoding="utf-8")
        file_handler.setFormatter(
            Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s")
        )
        logger.addHandler(file_handler)

    return logger
