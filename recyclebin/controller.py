"""
Lifecycle controller: trash, restore, purge.

Each logical name goes ABSENT -> TRASHED -> (RESTORED | PURGED). Calls that
target the same name are serialized with a per-name lock; different names
proceed in parallel. The sqlite index only adds the original source and
timestamp for nicer restores; the store directory stays authoritative.
"""

import os
import logging
import contextlib
import sqlite3
import threading
from datetime import datetime
from pathlib import Path

import config
from . import database
from .errors import (
    DestinationExists,
    DestinationWriteFailed,
    InvalidName,
    NameCollision,
    NestedPath,
    NoOriginalLocation,
    NotFound,
    SourceDeleteFailed,
    SourceUnreadable,
)
from .models import CollisionPolicy, TrashedItem
from .mover import check_not_nested, move_or_copy
from .sources import LocalFileSource
from .store import TrashStore, base_name
from .utils import numbered_name

logger = logging.getLogger(__name__)


class TrashController:
    def __init__(self, store=None, policy=None, db_path=None, use_index=True):
        self.store = store if store is not None else TrashStore()
        self.policy = CollisionPolicy.parse(policy if policy is not None else config.COLLISION_POLICY)
        self.db_path = db_path
        self.use_index = use_index

        self._names_lock = threading.Lock()
        self._locks = {}
        self._pending = set()
        self._index_ready = False

    # ---- locking ----
    @contextlib.contextmanager
    def _lock_for(self, name):
        """Hold the per-name lock; the entry is dropped once nobody holds or waits on it."""
        with self._names_lock:
            entry = self._locks.get(name)
            if entry is None:
                entry = self._locks[name] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._names_lock:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[name]

    def _taken(self, name):
        return name in self._pending or self.store.exists(name)

    def _reserve_name(self, base):
        """Pick the logical name for a new item and reserve it until the trash finishes."""
        with self._names_lock:
            name = base
            if self._taken(name):
                if self.policy is CollisionPolicy.REJECT:
                    raise NameCollision(f"Already in trash: {base}", name=base)
                n = 1
                while self._taken(numbered_name(base, n)):
                    n += 1
                name = numbered_name(base, n)
            self._pending.add(name)
            return name

    def _release_name(self, name):
        with self._names_lock:
            self._pending.discard(name)

    # ---- sidecar index ----
    def _index(self, func, *args):
        """Run a database call; the index is optional, so failures only warn."""
        if not self.use_index:
            return None
        try:
            if not self._index_ready:
                database.init_db(self.db_path)
                self._index_ready = True
            return func(*args, db_path=self.db_path)
        except (sqlite3.Error, OSError) as e:
            logger.warning("Trash index unavailable (%s): %s", func.__name__, e)
            return None

    def _item_from_disk(self, name, row=None):
        path = self.store.path_for(name)
        try:
            size = self.store.size_of(name)
        except OSError:
            size = None
        if row is not None:
            return TrashedItem(name, path, row[2], datetime.fromtimestamp(row[3]), size)
        try:
            trashed_at = datetime.fromtimestamp(self.store.mtime_of(name))
        except OSError:
            trashed_at = datetime.now()
        return TrashedItem(name, path, None, trashed_at, size)

    # ---- queries ----
    def exists(self, name):
        return self.store.exists(name)

    def get(self, name):
        with self._lock_for(name):
            if not self.store.exists(name):
                raise NotFound(f"Not in trash: {name}", name=name)
            return self._item_from_disk(name, self._index(database.get_item, name))

    def list_items(self):
        rows = {row[0]: row for row in (self._index(database.get_all_items) or [])}
        items = []
        for name in self.store.list_names():
            try:
                items.append(self._item_from_disk(name, rows.get(name)))
            except (OSError, InvalidName):
                # vanished between listing and stat, or not a name we manage
                continue
        return items

    def sync_index(self):
        """Make the index match the directory: drop stale rows, add missing ones."""
        names = set(self.store.list_names())
        rows = {row[0]: row for row in (self._index(database.get_all_items) or [])}
        for name in rows.keys() - names:
            self._index(database.delete_item, name)
        for name in names - rows.keys():
            try:
                item = self._item_from_disk(name)
            except (OSError, InvalidName):
                continue
            self._index(database.upsert_item, name, item.stored_path, None,
                        item.trashed_at.timestamp(), item.size)
        return len(names)

    def _check_not_store(self, local):
        """Refuse sources that are the trash root or contain it."""
        src = local.parent.resolve() / local.name if local.is_symlink() else local.resolve()
        root = self.store.root.resolve()
        if root == src or src in root.parents:
            raise NestedPath(f"Cannot trash {local}: it contains the trash folder {self.store.root}",
                             path=local)

    # ---- operations ----
    def trash(self, source, cancel=None, on_progress=None):
        """Move `source` into the trash and return the new TrashedItem."""
        display = source.display_name()
        base = base_name(display) if display else None
        if not base:
            raise SourceUnreadable(f"No display name for source {source!r}")
        self.store.path_for(base)  # validates the name
        if source.local_path is not None:
            self._check_not_store(source.local_path)

        name = self._reserve_name(base)
        try:
            with self._lock_for(name):
                self.store.ensure_root()
                destination = self.store.path_for(name)
                size = source.size()
                try:
                    move_or_copy(source, destination, cancel=cancel, on_progress=on_progress)
                except SourceDeleteFailed as e:
                    e.item = self._record(name, destination, source, size)
                    e.name = name
                    raise
                item = self._record(name, destination, source, size)
        finally:
            self._release_name(name)
        logger.info("Trashed %s as %s", source.describe() or display, name)
        return item

    def _record(self, name, destination, source, size):
        if size is None:
            try:
                size = self.store.size_of(name)
            except OSError:
                size = None
        item = TrashedItem(name, destination, source.describe(), datetime.now(), size)
        self._index(database.upsert_item, name, destination, item.original_source,
                    item.trashed_at.timestamp(), size)
        self._index(database.add_history, "trash", name, item.original_source)
        return item

    def _original_dir(self, name):
        row = self._index(database.get_item, name)
        original = row[2] if row else None
        if not original or "://" in original:
            raise NoOriginalLocation(f"Original location of {name} is unknown", name=name)
        return Path(original).parent

    def restore(self, name, destination_dir=None, cancel=None, on_progress=None):
        """Move `name` out of the trash into `destination_dir` (default: where it came from)."""
        with self._lock_for(name):
            if not self.store.exists(name):
                raise NotFound(f"Not in trash: {name}", name=name)
            if destination_dir is None:
                destination_dir = self._original_dir(name)
            destination_dir = Path(destination_dir).expanduser()
            target = destination_dir / name
            if os.path.lexists(target):
                raise DestinationExists(f"Restore target already exists: {target}", name=name, path=target)
            stored_path = self.store.path_for(name)
            check_not_nested(stored_path, target)
            try:
                destination_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise DestinationWriteFailed(f"Cannot create {destination_dir}: {e}",
                                             name=name, path=destination_dir) from e

            stored = LocalFileSource(stored_path)
            try:
                move_or_copy(stored, target, cancel=cancel, on_progress=on_progress)
            except SourceDeleteFailed as e:
                e.name = name
                raise
            self._index(database.delete_item, name)
            self._index(database.add_history, "restore", name, str(target))
        logger.info("Restored %s -> %s", name, target)
        return target

    def purge(self, name):
        """Permanently delete `name` from the trash."""
        with self._lock_for(name):
            self.store.remove(name)
            self._index(database.delete_item, name)
            self._index(database.add_history, "purge", name)
        logger.info("Purged %s", name)

    def purge_all(self):
        """Empty the trash; returns how many entries were removed."""
        count = 0
        for name in self.store.list_names():
            try:
                self.purge(name)
            except NotFound:
                continue
            count += 1
        return count
