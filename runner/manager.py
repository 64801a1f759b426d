from rich.console import Console

from trainboard.config import Settings
from trainboard.store import TrainRecordStore
from trainboard.views import admin_board, public_board, render_board
from utils.make_logger import make_logger


class BoardManager:
    """
    ストアの作成と表示の更新を行うクラス

    Attributes
    ----------
    settings : Settings
        設定
    store : TrainRecordStore
        列車レコードのストア
    console : Console
        表示先のコンソール
    logger : Logger
        ロガー

    Methods
    -------
    refresh_public() -> None
        公開用のボードを表示する
    refresh_admin() -> None
        管理用のボードを表示する
    """

    def __init__(
        self,
        settings: Settings,
        store: TrainRecordStore | None = None,
        console: Console | None = None,
    ):
        self.settings = settings
        self.logger = make_logger(type(self).__name__, context=settings.storage_backend)
        self.console = console or Console()

        if store is None:
            store = TrainRecordStore.open(
                settings.create_storage(),
                persistence_enabled=settings.persistence_enabled,
            )
        self.store = store

        if not self.store.persistence_enabled:
            self.logger.warning("Persistence is disabled. Changes will be lost on exit.")

    def refresh_public(self) -> None:
        board = public_board(self.store, limit=self.settings.public_limit)
        render_board(board, self.console, title="Volné kapacity")
        self.logger.info(f"Public board refreshed ({sum(len(t) for t in board.values())} trains)")

    def refresh_admin(self) -> None:
        board = admin_board(self.store)
        render_board(board, self.console, title="Správa vlaků", show_ids=True)
        self.logger.info(f"Admin board refreshed ({sum(len(t) for t in board.values())} trains)")
