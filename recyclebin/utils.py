import os
import datetime
from plyer import notification


def format_size(num_bytes):
    """Convert bytes to human-readable format (KB, MB, GB)."""
    if num_bytes is None:
        return "?"
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if num_bytes < 1024.0:
            return f"{num_bytes:.2f} {unit}"
        num_bytes /= 1024.0
    return f"{num_bytes:.2f} PB"


def format_time(timestamp):
    """Convert a UNIX timestamp or datetime to a readable string."""
    if isinstance(timestamp, datetime.datetime):
        return timestamp.strftime("%Y-%m-%d %H:%M:%S")
    return datetime.datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d %H:%M:%S")


def numbered_name(name, n):
    """'notes.txt', 2 -> 'notes (2).txt'. Dotfiles like '.bashrc' keep their name as the stem."""
    stem, ext = os.path.splitext(name)
    return f"{stem} ({n}){ext}"


def file_chunks(f, chunk_size):
    """Yield fixed-size chunks from an open binary file handle."""
    while True:
        data = f.read(chunk_size)
        if not data:
            break
        yield data


def is_cancelled(cancel_flag):
    """Support Event, dict-style and callable cancel flags."""
    if cancel_flag is None:
        return False
    if hasattr(cancel_flag, "is_set"):
        return cancel_flag.is_set()
    if callable(cancel_flag):
        return bool(cancel_flag())
    if isinstance(cancel_flag, dict):
        return bool(cancel_flag.get("cancel", False))
    return False


def log(message):
    """Print a log message with timestamp."""
    time_str = datetime.datetime.now().strftime("%H:%M:%S")
    print(f"[{time_str}] {message}")


def notify(title, message):
    """Send a desktop notification."""
    try:
        notification.notify(title=title, message=message, timeout=5)
    except Exception as e:
        print(f"[Notify Error] {e}")
