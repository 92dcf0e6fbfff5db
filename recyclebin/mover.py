import os
import errno
import shutil
import logging
import contextlib
from pathlib import Path
from uuid import uuid4

import config
from .errors import (
    DestinationExists,
    DestinationWriteFailed,
    NestedPath,
    OperationCancelled,
    RecycleBinError,
    SourceDeleteFailed,
    SourceUnreadable,
)
from .store import STAGING_PREFIX, STAGING_SUFFIX
from .utils import file_chunks, is_cancelled

logger = logging.getLogger(__name__)

RENAMED = "rename"
COPIED = "copy"


# ---- Helper: progress emitter ----
def _emit(on_progress, **info):
    """Safely emit progress info back to the caller."""
    if on_progress:
        try:
            on_progress(info)
        except Exception:
            logger.debug("Progress callback failed", exc_info=True)


def _staging_path(destination):
    return destination.parent / f"{STAGING_PREFIX}{destination.name}.{uuid4().hex[:8]}{STAGING_SUFFIX}"


def _discard(staging):
    try:
        if staging.is_dir() and not staging.is_symlink():
            shutil.rmtree(staging)
        elif os.path.lexists(staging):
            os.remove(staging)
    except OSError as e:
        logger.warning("Could not remove staging data %s: %s", staging, e)


def _publish(staging, destination):
    """Give a fully written staging file or tree its final name."""
    if os.path.lexists(destination):
        raise DestinationExists(f"Destination already exists: {destination}", path=destination)
    try:
        os.replace(staging, destination)
    except OSError as e:
        raise DestinationWriteFailed(f"Cannot finalize {destination}: {e}", path=destination) from e


def _pump(src, out, chunk_size, cancel, on_progress, state, label):
    """Copy src -> out in bounded chunks; returns bytes written."""
    copied = 0
    chunks = file_chunks(src, chunk_size)
    while True:
        if is_cancelled(cancel):
            raise OperationCancelled(f"Copy of {label} cancelled")
        try:
            chunk = next(chunks, None)
        except OSError as e:
            raise SourceUnreadable(f"Read failed for {label}: {e}") from e
        if chunk is None:
            break
        try:
            out.write(chunk)
        except OSError as e:
            raise DestinationWriteFailed(f"Write failed for {label}: {e}") from e
        copied += len(chunk)
        state["bytes_copied"] += len(chunk)
        _emit(on_progress, stage="copy", **state)
    try:
        out.flush()
        os.fsync(out.fileno())
    except OSError as e:
        raise DestinationWriteFailed(f"Flush failed for {label}: {e}") from e
    return copied


def _open_output(path):
    try:
        return open(path, "xb")
    except OSError as e:
        raise DestinationWriteFailed(f"Cannot create {path}: {e}", path=path) from e


def _try_rename(local, destination):
    """Atomic same-volume move. Returns False when a copy is needed instead."""
    try:
        os.rename(local, destination)
        return True
    except FileNotFoundError as e:
        if not os.path.lexists(local):
            raise SourceUnreadable(f"Source not found: {local}", path=local) from e
        raise DestinationWriteFailed(f"Destination folder missing: {destination.parent}",
                                     path=destination) from e
    except OSError as e:
        if e.errno == errno.EXDEV:
            logger.debug("Cross-device move %s -> %s, copying instead", local, destination)
        else:
            logger.debug("Rename %s -> %s refused (%s), copying instead", local, destination, e)
        return False


def _copy_stream(source, destination, chunk_size, cancel, on_progress):
    label = source.display_name() or str(destination.name)
    total = source.size()
    state = {"bytes_copied": 0, "total_bytes": total}
    try:
        src = source.open()
    except OSError as e:
        raise SourceUnreadable(f"Cannot open {label}: {e}") from e
    staging = _staging_path(destination)
    try:
        with contextlib.closing(src), _open_output(staging) as out:
            copied = _pump(src, out, chunk_size, cancel, on_progress, state, label)
        if total is not None and copied != total:
            raise DestinationWriteFailed(
                f"Size mismatch for {label}: wrote {copied} of {total} bytes", path=destination
            )
        if source.local_path is not None:
            try:
                shutil.copystat(source.local_path, staging)
            except OSError as e:
                logger.debug("Could not copy metadata of %s: %s", source.local_path, e)
        _publish(staging, destination)
    except BaseException:
        _discard(staging)
        raise


def _copy_tree(local, destination, chunk_size, cancel, on_progress):
    total = 0
    for root, dirs, files in os.walk(local):
        for f in files:
            try:
                total += os.path.getsize(os.path.join(root, f))
            except OSError:
                continue
    state = {"bytes_copied": 0, "total_bytes": total}

    def copy_one(src_path, dst_path):
        try:
            src = open(src_path, "rb")
        except OSError as e:
            raise SourceUnreadable(f"Cannot open {src_path}: {e}", path=src_path) from e
        with src, _open_output(dst_path) as out:
            expected = os.fstat(src.fileno()).st_size
            copied = _pump(src, out, chunk_size, cancel, on_progress, state, src_path)
        if copied != expected:
            raise DestinationWriteFailed(
                f"Size mismatch for {src_path}: wrote {copied} of {expected} bytes", path=dst_path
            )
        shutil.copystat(src_path, dst_path)
        return dst_path

    staging = _staging_path(destination)
    try:
        shutil.copytree(local, staging, symlinks=True, copy_function=copy_one)
        _publish(staging, destination)
    except RecycleBinError:
        _discard(staging)
        raise
    except (OSError, shutil.Error) as e:
        _discard(staging)
        if not local.exists():
            raise SourceUnreadable(f"Source disappeared: {local}", path=local) from e
        raise DestinationWriteFailed(f"Copy of {local} failed: {e}", path=destination) from e
    except BaseException:
        _discard(staging)
        raise


def check_not_nested(local, destination):
    """A tree cannot be moved into itself; the copy would be deleted along with the source."""
    try:
        # a symlink is moved as a link, so compare the link itself, not its target
        src = local.parent.resolve() / local.name if local.is_symlink() else local.resolve()
        dst = destination.resolve()
    except OSError as e:
        raise SourceUnreadable(f"Cannot resolve {local}: {e}", path=local) from e
    if dst == src or src in dst.parents:
        raise NestedPath(f"Cannot move {local} into itself ({destination})", path=destination)


def move_or_copy(source, destination, chunk_size=None, cancel=None, on_progress=None):
    """
    Move `source` (a SourceHandle) to `destination`.

    Tries an atomic rename first when the source is local; otherwise streams
    the bytes into a staging file next to the destination and renames it
    into place only once it is complete and flushed. After a copy the
    original is removed; if that fails SourceDeleteFailed is raised and the
    copy is kept.

    Returns RENAMED or COPIED.
    """
    destination = Path(destination)
    chunk_size = chunk_size or config.COPY_CHUNK_SIZE
    if os.path.lexists(destination):
        raise DestinationExists(f"Destination already exists: {destination}", path=destination)

    local = source.local_path
    if local is not None:
        if not os.path.lexists(local):
            raise SourceUnreadable(f"Source not found: {local}", path=local)
        check_not_nested(local, destination)
        if is_cancelled(cancel):
            raise OperationCancelled(f"Move of {local} cancelled", path=local)
        if _try_rename(local, destination):
            logger.debug("Renamed %s -> %s", local, destination)
            _emit(on_progress, stage="rename", bytes_copied=0, total_bytes=source.size())
            _emit(on_progress, stage="done", method=RENAMED)
            return RENAMED

    if local is not None and local.is_dir() and not local.is_symlink():
        _copy_tree(local, destination, chunk_size, cancel, on_progress)
    else:
        _copy_stream(source, destination, chunk_size, cancel, on_progress)
    logger.debug("Copied %r -> %s", source, destination)

    try:
        source.delete()
    except Exception as e:
        raise SourceDeleteFailed(
            f"Copied to {destination} but could not remove the original: {e}",
            path=destination,
        ) from e
    _emit(on_progress, stage="done", method=COPIED)
    return COPIED
