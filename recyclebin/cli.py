# recyclebin/cli.py
import argparse
import logging

import config
from . import history
from .controller import TrashController
from .errors import NoOriginalLocation, RecycleBinError, SourceDeleteFailed
from .sources import source_from_uri
from .store import TrashStore
from .utils import format_size, format_time, log, notify


def build_parser():
    parser = argparse.ArgumentParser(
        prog="recyclebin",
        description="Move files to a recycle bin, restore them, or purge them for good.",
    )
    parser.add_argument("--root", help=f"trash folder (default: {config.TRASH_DIR})")
    parser.add_argument("--db", help="index database path")
    parser.add_argument("--policy", choices=["reject", "rename"],
                        help="what to do when a name is already in the trash")
    parser.add_argument("--notify", action="store_true", help="show a desktop notification when done")
    parser.add_argument("-v", "--verbose", action="store_true")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("trash", help="move files or folders to the trash")
    p.add_argument("paths", nargs="+", help="paths or file:// URIs")

    p = sub.add_parser("restore", help="restore an item from the trash")
    p.add_argument("name")
    p.add_argument("--to", dest="destination",
                   help="destination folder (default: original location, else the Downloads folder)")

    p = sub.add_parser("purge", help="permanently delete items from the trash")
    p.add_argument("names", nargs="+")

    sub.add_parser("list", help="list trashed items")
    sub.add_parser("empty", help="permanently delete everything in the trash")

    p = sub.add_parser("history", help="show recent operations")
    p.add_argument("--limit", type=int, default=20)
    return parser


def _fail(action, target, err):
    log(f"{action} failed for {target}: {type(err).__name__}: {err}")


def cmd_trash(controller, args):
    failures = 0
    for path in args.paths:
        try:
            item = controller.trash(source_from_uri(path))
        except SourceDeleteFailed as e:
            failures += 1
            log(f"Copied {path} to trash as {e.name}, but the original could not be removed: {e}")
            continue
        except RecycleBinError as e:
            failures += 1
            _fail("Trash", path, e)
            continue
        log(f"Moved to trash: {path} -> {item.name}")
    return failures


def cmd_restore(controller, args):
    try:
        try:
            target = controller.restore(args.name, args.destination)
        except NoOriginalLocation:
            target = controller.restore(args.name, config.RESTORE_DIR)
    except RecycleBinError as e:
        _fail("Restore", args.name, e)
        return 1
    log(f"Restored: {args.name} -> {target}")
    return 0


def cmd_purge(controller, args):
    failures = 0
    for name in args.names:
        try:
            controller.purge(name)
        except RecycleBinError as e:
            failures += 1
            _fail("Purge", name, e)
            continue
        log(f"Permanently deleted: {name}")
    return failures


def cmd_list(controller, args):
    items = controller.list_items()
    if not items:
        log("Trash is empty.")
        return 0
    for item in items:
        origin = item.original_source or "?"
        print(f"{item.name}\t{format_size(item.size)}\t{format_time(item.trashed_at)}\t{origin}")
    return 0


def cmd_empty(controller, args):
    try:
        count = controller.purge_all()
    except RecycleBinError as e:
        _fail("Empty", controller.store.root, e)
        return 1
    log(f"Emptied trash: {count} item(s) permanently deleted.")
    return 0


def cmd_history(controller, args):
    history.display_history(args.limit, db_path=controller.db_path)
    return 0


COMMANDS = {
    "trash": cmd_trash,
    "restore": cmd_restore,
    "purge": cmd_purge,
    "list": cmd_list,
    "empty": cmd_empty,
    "history": cmd_history,
}


def index_path(args):
    """Index for a custom --root sits beside that root unless --db says otherwise."""
    if args.db:
        return args.db
    if args.root:
        return str(TrashStore(args.root).root) + ".db"
    return None


def run(argv=None):
    """Parse arguments, run one command, return the exit status."""
    return execute(build_parser().parse_args(argv))


def execute(args):
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    controller = TrashController(
        store=TrashStore(args.root) if args.root else None,
        policy=args.policy,
        db_path=index_path(args),
    )
    failures = COMMANDS[args.command](controller, args)

    if args.notify:
        status = "completed" if not failures else f"finished with {failures} error(s)"
        notify(f"{config.APP_NAME} - {args.command.capitalize()}", f"{args.command.capitalize()} {status}")
    return 1 if failures else 0
