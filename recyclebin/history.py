from . import database
from .utils import log
import datetime


def get_history(limit=20, db_path=None):
    """
    Retrieve recent trash/restore/purge operations from the database.
    :param limit: Max number of records to return
    :return: List of history dicts, newest first
    """
    rows = database.get_history(limit, db_path=db_path)
    history = []
    for row in rows:
        history.append({
            "id": row[0],
            "timestamp": datetime.datetime.fromtimestamp(row[1]).strftime("%Y-%m-%d %H:%M:%S"),
            "action": row[2],
            "name": row[3],
            "detail": row[4],
        })
    return history


def display_history(limit=20, db_path=None):
    """
    Prints the operation history to the console.
    """
    history = get_history(limit, db_path=db_path)
    if not history:
        log("No history found.")
        return

    log("=== Trash History ===")
    for record in history:
        detail = f" ({record['detail']})" if record["detail"] else ""
        log(f"ID: {record['id']}, Date: {record['timestamp']}, "
            f"{record['action'].upper()}: {record['name']}{detail}")
