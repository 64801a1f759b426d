from rich.console import Console
from rich.table import Table
from rich.text import Text

from enums import CapacityStatus, Corridor
from utils.make_logger import make_logger

from .store import DEFAULT_PUBLIC_LIMIT, TrainRecordStore
from .trainrecord import TrainRecord

logger = make_logger("views")

Board = dict[Corridor, list[TrainRecord]]

EMPTY_MESSAGE = "Žádné vlaky"


def public_board(store: TrainRecordStore, limit: int = DEFAULT_PUBLIC_LIMIT) -> Board:
    return {c: store.list_public(c, limit) for c in Corridor}


def admin_board(store: TrainRecordStore) -> Board:
    return {c: store.list_trains(c) for c in Corridor}


def format_departure_local(record: TrainRecord) -> str:
    departure = record.departure_at()
    if departure is None:
        return record.departure
    return f"{departure.astimezone():%d.%m.%Y %H:%M}"


def status_text(code: str) -> Text:
    status = CapacityStatus.from_code(code)
    if status is None:
        return Text(code, style="dim")
    return Text(status.label, style=status.style)


def build_table(corridor: Corridor, trains: list[TrainRecord], show_ids: bool = False) -> Table:
    """
    コリドーごとの表を作成する。

    Parameters
    ----------
    corridor : Corridor
        表のコリドー
    trains : list[TrainRecord]
        表示するレコード（並び替え済み）
    show_ids : bool, optional
        IDの列を表示するかどうか。管理画面ではTrue。

    Returns
    -------
    Table
        richの表
    """
    table = Table(title=corridor.label, title_justify="left", expand=True)
    if show_ids:
        table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Odjezd")
    table.add_column("Status")

    if not trains:
        row = [Text(EMPTY_MESSAGE, style="dim"), ""]
        table.add_row(*([""] + row if show_ids else row))
        return table

    for t in trains:
        row = [format_departure_local(t), status_text(t.status)]
        table.add_row(*([t.id] + row if show_ids else row))

    return table


def render_board(
    board: Board, console: Console | None = None, title: str | None = None, show_ids: bool = False
) -> None:
    console = console or Console()
    if title:
        console.rule(title)

    for corridor, trains in board.items():
        console.print(build_table(corridor, trains, show_ids=show_ids))

    logger.debug(f"Rendered {sum(len(t) for t in board.values())} trains")
