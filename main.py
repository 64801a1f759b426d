import argparse
import sys
import time
from datetime import datetime

from dotenv import load_dotenv

from enums import CapacityStatus, Corridor
from runner.manager import BoardManager
from trainboard.config import Settings
from trainboard.errors import TrainBoardError
from trainboard.transfer import read_import, write_export
from utils.make_logger import make_logger

logger = make_logger("Main")


def _calc_next_execute(interval: int, now: datetime | None = None) -> datetime:
    now = now or datetime.now()
    timestamp = int(now.timestamp())

    next_ts = (timestamp // interval + 1) * interval
    return datetime.fromtimestamp(next_ts)


def run_board(manager: BoardManager, once: bool = False) -> None:
    interval = manager.settings.refresh_interval  # seconds

    while True:
        manager.refresh_public()
        if once:
            return

        next_execute = _calc_next_execute(interval=interval)
        sleep_sec = (next_execute - datetime.now()).total_seconds()
        if sleep_sec > 0:
            logger.debug(f"Next refresh at {next_execute:%H:%M:%S}")
            time.sleep(sleep_sec)


def run_admin(manager: BoardManager, args: argparse.Namespace) -> None:
    store = manager.store
    console = manager.console

    match args.action:
        case "list":
            manager.refresh_admin()
        case "add":
            record = store.add(args.corridor, args.departure, args.status)
            console.print(f"Added train [cyan]{record.id}[/cyan]")
        case "update":
            record = store.update(
                args.id,
                corridor=args.corridor,
                departure=args.departure,
                status=args.status,
            )
            console.print(f"Updated train [cyan]{record.id}[/cyan]")
        case "delete":
            if store.delete(args.id):
                console.print(f"Deleted train [cyan]{args.id}[/cyan]")
            else:
                console.print(f"Train [cyan]{args.id}[/cyan] does not exist")
        case "export":
            path = write_export(store, args.dir)
            console.print(f"Exported to {path}")
        case "import":
            records = read_import(store, args.path)
            console.print(f"Imported {len(records)} trains")
        case "reset":
            records = store.reset_to_default()
            console.print(f"Reset to {len(records)} default trains")


def build_parser() -> argparse.ArgumentParser:
    corridors = [c.id for c in Corridor]
    statuses = [s.code for s in CapacityStatus]

    parser = argparse.ArgumentParser(prog="trainboard")
    sub = parser.add_subparsers(dest="command", required=True)

    board = sub.add_parser("board", help="show the public capacity board")
    board.add_argument("--once", action="store_true", help="render once and exit")

    admin = sub.add_parser("admin", help="manage trains")
    actions = admin.add_subparsers(dest="action", required=True)

    actions.add_parser("list", help="list all trains")

    add = actions.add_parser("add", help="add a train")
    add.add_argument("corridor", choices=corridors)
    add.add_argument("departure", help="ISO-8601 departure time")
    add.add_argument("--status", choices=statuses, default=CapacityStatus.AVAILABLE.code)

    update = actions.add_parser("update", help="update a train")
    update.add_argument("id")
    update.add_argument("--corridor", choices=corridors)
    update.add_argument("--departure", help="ISO-8601 departure time")
    update.add_argument("--status", choices=statuses)

    delete = actions.add_parser("delete", help="delete a train")
    delete.add_argument("id")

    export = actions.add_parser("export", help="export trains to a JSON file")
    export.add_argument("--dir", default=".")

    import_ = actions.add_parser("import", help="replace trains from a JSON file")
    import_.add_argument("path")

    actions.add_parser("reset", help="restore the default trains")

    return parser


def main(argv: list[str] | None = None, settings: Settings | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = settings or Settings.from_env()

    manager = BoardManager(settings)

    try:
        if args.command == "board":
            run_board(manager, once=args.once)
        else:
            run_admin(manager, args)
    except TrainBoardError as e:
        logger.error(str(e))
        manager.console.print(f"[red]{e}[/red]")
        return 1
    except OSError:
        logger.error("File operation failed", exc_info=True)
        return 1

    return 0


if __name__ == "__main__":
    load_dotenv()
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(130)
