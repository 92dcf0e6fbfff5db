import os
import shutil
import logging
from pathlib import Path

import config
from .errors import InvalidName, NotFound, PermissionDenied, StorageUnavailable

logger = logging.getLogger(__name__)

# In-flight copies are written as ".~<name>.<token>.part" next to their target
STAGING_PREFIX = ".~"
STAGING_SUFFIX = ".part"

# Only the platform's own separators split a name; "\" is a plain character on POSIX
NAME_SEPARATORS = tuple(sorted(s for s in {"/", os.sep, os.altsep} if s))


def is_staging_name(name):
    return name.startswith(STAGING_PREFIX) and name.endswith(STAGING_SUFFIX)


def is_valid_name(name):
    if not name or name in (".", ".."):
        return False
    if any(sep in name for sep in NAME_SEPARATORS):
        return False
    return not is_staging_name(name)


def base_name(display):
    """Last segment of a display name that may carry a path."""
    for sep in NAME_SEPARATORS:
        if sep != "/":
            display = display.replace(sep, "/")
    return display.rstrip("/").rsplit("/", 1)[-1]


class TrashStore:
    """
    The holding area. The directory listing is the index: one entry per
    logical name, nothing else to keep in sync.
    """

    def __init__(self, root=None):
        self.root = Path(root if root is not None else config.TRASH_DIR).expanduser().absolute()

    def __repr__(self):
        return f"TrashStore({str(self.root)!r})"

    def path_for(self, name):
        if is_staging_name(name):
            raise InvalidName(f"Name is reserved for in-flight copies: {name!r}", name=name)
        if not is_valid_name(name):
            raise InvalidName(f"Invalid trash name: {name!r}", name=name)
        return self.root / name

    def exists(self, name):
        # lexists: a dangling symlink still occupies the name
        return os.path.lexists(self.path_for(name))

    def ensure_root(self):
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except FileExistsError as e:
            raise StorageUnavailable(f"Trash root is not a directory: {self.root}", path=self.root) from e
        except OSError as e:
            raise StorageUnavailable(f"Cannot create trash root {self.root}: {e}", path=self.root) from e
        if not self.root.is_dir():
            raise StorageUnavailable(f"Trash root is not a directory: {self.root}", path=self.root)
        if not os.access(self.root, os.W_OK | os.X_OK):
            raise StorageUnavailable(f"Trash root is not writable: {self.root}", path=self.root)

    def remove(self, name):
        path = self.path_for(name)
        if not os.path.lexists(path):
            raise NotFound(f"Not in trash: {name}", name=name, path=path)
        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                os.remove(path)
        except FileNotFoundError as e:
            raise NotFound(f"Not in trash: {name}", name=name, path=path) from e
        except PermissionError as e:
            raise PermissionDenied(f"Delete refused for {path}: {e}", name=name, path=path) from e
        except OSError as e:
            raise PermissionDenied(f"Could not delete {path}: {e}", name=name, path=path) from e
        logger.debug("Removed %s from trash", path)

    def list_names(self):
        """Sorted logical names currently in the store (empty if the root is absent)."""
        try:
            entries = os.listdir(self.root)
        except FileNotFoundError:
            return []
        except OSError as e:
            raise StorageUnavailable(f"Cannot list trash root {self.root}: {e}", path=self.root) from e
        return sorted(n for n in entries if is_valid_name(n))

    def size_of(self, name):
        path = self.path_for(name)
        if path.is_symlink() or not path.is_dir():
            return path.lstat().st_size
        total = 0
        for root, dirs, files in os.walk(path):
            for f in files:
                try:
                    total += os.lstat(os.path.join(root, f)).st_size
                except OSError:
                    continue
        return total

    def mtime_of(self, name):
        return self.path_for(name).lstat().st_mtime
