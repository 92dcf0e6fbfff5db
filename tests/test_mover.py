import io
import os
import errno
import threading
import pytest
from recyclebin import mover
from recyclebin.sources import LocalFileSource, StreamSource
from recyclebin.errors import (
    DestinationExists,
    DestinationWriteFailed,
    NestedPath,
    OperationCancelled,
    SourceDeleteFailed,
    SourceUnreadable,
)


def _no_rename(monkeypatch):
    """Pretend source and destination live on different volumes."""
    def cross_device(src, dst):
        raise OSError(errno.EXDEV, "Invalid cross-device link")
    monkeypatch.setattr(mover.os, "rename", cross_device)


def _leftovers(folder):
    return [p.name for p in folder.iterdir() if p.name.endswith(".part")]


def test_same_volume_uses_rename(tmp_path):
    src = tmp_path / "photo.jpg"
    src.write_bytes(b"\xff\xd8jpegdata")
    dest = tmp_path / "trash" / "photo.jpg"
    dest.parent.mkdir()

    method = mover.move_or_copy(LocalFileSource(src), dest)
    assert method == mover.RENAMED
    assert not src.exists()
    assert dest.read_bytes() == b"\xff\xd8jpegdata"


def test_cross_device_falls_back_to_chunked_copy(tmp_path, monkeypatch):
    _no_rename(monkeypatch)
    data = os.urandom(10_000)
    src = tmp_path / "big.bin"
    src.write_bytes(data)
    dest = tmp_path / "out" / "big.bin"
    dest.parent.mkdir()
    events = []

    method = mover.move_or_copy(LocalFileSource(src), dest, chunk_size=1024, on_progress=events.append)
    assert method == mover.COPIED
    assert dest.read_bytes() == data
    assert not src.exists()
    assert _leftovers(dest.parent) == []
    copies = [e for e in events if e["stage"] == "copy"]
    assert len(copies) == 10
    assert copies[-1]["bytes_copied"] == 10_000
    assert events[-1]["stage"] == "done"


def test_directory_copy_fallback(tmp_path, monkeypatch):
    _no_rename(monkeypatch)
    src = tmp_path / "project"
    (src / "sub").mkdir(parents=True)
    (src / "a.txt").write_text("alpha")
    (src / "sub" / "b.txt").write_text("beta")
    dest = tmp_path / "trash" / "project"
    dest.parent.mkdir()

    assert mover.move_or_copy(LocalFileSource(src), dest, chunk_size=2) == mover.COPIED
    assert (dest / "a.txt").read_text() == "alpha"
    assert (dest / "sub" / "b.txt").read_text() == "beta"
    assert not src.exists()


def test_stream_source_is_copied_and_closed(tmp_path):
    stream = io.BytesIO(b"provider bytes")
    deleted = []
    source = StreamSource(lambda: stream, uri="content://docs/42/report.pdf",
                          size=14, deleter=lambda: deleted.append(True))
    dest = tmp_path / "report.pdf"

    assert source.display_name() == "report.pdf"
    assert mover.move_or_copy(source, dest) == mover.COPIED
    assert dest.read_bytes() == b"provider bytes"
    assert stream.closed
    assert deleted == [True]


def test_size_mismatch_leaves_no_destination(tmp_path):
    source = StreamSource(lambda: io.BytesIO(b"short"), display_name="x.bin", size=100)
    dest = tmp_path / "x.bin"
    with pytest.raises(DestinationWriteFailed):
        mover.move_or_copy(source, dest)
    assert not dest.exists()
    assert _leftovers(tmp_path) == []


def test_missing_source_is_unreadable(tmp_path):
    with pytest.raises(SourceUnreadable):
        mover.move_or_copy(LocalFileSource(tmp_path / "nope.txt"), tmp_path / "dest.txt")


def test_stream_that_cannot_open_is_unreadable(tmp_path):
    def broken():
        raise IOError("provider went away")
    with pytest.raises(SourceUnreadable):
        mover.move_or_copy(StreamSource(broken, display_name="y.txt"), tmp_path / "y.txt")
    assert not (tmp_path / "y.txt").exists()


def test_never_overwrites_destination(tmp_path):
    src = tmp_path / "new.txt"
    src.write_text("new")
    dest = tmp_path / "dest.txt"
    dest.write_text("old")
    with pytest.raises(DestinationExists):
        mover.move_or_copy(LocalFileSource(src), dest)
    assert dest.read_text() == "old"
    assert src.exists()


def test_unwritable_destination(tmp_path, monkeypatch):
    _no_rename(monkeypatch)
    src = tmp_path / "a.txt"
    src.write_text("a")
    with pytest.raises(DestinationWriteFailed):
        mover.move_or_copy(LocalFileSource(src), tmp_path / "missing-dir" / "a.txt")
    assert src.read_text() == "a"


def test_source_delete_failure_keeps_copy(tmp_path):
    def refuse():
        raise PermissionError("read-only provider")
    source = StreamSource(lambda: io.BytesIO(b"keep me"), display_name="k.txt", deleter=refuse)
    dest = tmp_path / "k.txt"
    with pytest.raises(SourceDeleteFailed):
        mover.move_or_copy(source, dest)
    # copy is not rolled back
    assert dest.read_bytes() == b"keep me"


def test_cancellation_between_chunks(tmp_path, monkeypatch):
    _no_rename(monkeypatch)
    src = tmp_path / "movie.mkv"
    src.write_bytes(b"x" * 4096)
    dest = tmp_path / "out" / "movie.mkv"
    dest.parent.mkdir()
    cancel = threading.Event()

    def stop_after_first_chunk(info):
        if info["stage"] == "copy":
            cancel.set()

    with pytest.raises(OperationCancelled):
        mover.move_or_copy(LocalFileSource(src), dest, chunk_size=1024,
                           cancel=cancel, on_progress=stop_after_first_chunk)
    assert src.read_bytes() == b"x" * 4096
    assert not dest.exists()
    assert _leftovers(dest.parent) == []


def test_directory_cannot_move_into_itself(tmp_path):
    src = tmp_path / "proj"
    src.mkdir()
    (src / "a.txt").write_text("alpha")

    for dest in [src / "proj", src / "deeper" / "proj"]:
        with pytest.raises(NestedPath):
            mover.move_or_copy(LocalFileSource(src), dest)

    assert (src / "a.txt").read_text() == "alpha"
    assert sorted(p.name for p in src.iterdir()) == ["a.txt"]
