"""
Byte sources the trash can consume.

A SourceHandle is whatever the caller hands over: a local path, or a stream
from some content provider. The core only needs to open it for reading, ask
for a display name, and (if it can) remove the original afterwards.
"""

import os
import shutil
from pathlib import Path
from urllib.parse import unquote, urlparse

from .errors import SourceUnreadable


def last_segment(uri):
    """Last non-empty path segment of a path or URI, percent-decoded."""
    parsed = urlparse(str(uri))
    path = parsed.path if parsed.scheme else str(uri)
    segments = [s for s in path.replace("\\", "/").split("/") if s]
    return unquote(segments[-1]) if segments else None


class SourceHandle:
    """Readable byte source plus a display name."""

    local_path = None

    def display_name(self):
        raise NotImplementedError

    def open(self):
        """Return a binary file-like object; the caller closes it."""
        raise NotImplementedError

    def size(self):
        return None

    def describe(self):
        """String stored as the item's original source."""
        return None

    def delete(self):
        """Remove the original after a successful copy."""
        raise NotImplementedError


class LocalFileSource(SourceHandle):
    def __init__(self, path):
        self.local_path = Path(path).expanduser().absolute()

    def __repr__(self):
        return f"LocalFileSource({str(self.local_path)!r})"

    def display_name(self):
        return self.local_path.name

    def is_dir(self):
        return self.local_path.is_dir()

    def open(self):
        try:
            return self.local_path.open("rb")
        except OSError as e:
            raise SourceUnreadable(f"Cannot open {self.local_path}: {e}", path=self.local_path) from e

    def size(self):
        try:
            if self.local_path.is_dir():
                return None
            return self.local_path.stat().st_size
        except OSError:
            return None

    def describe(self):
        return str(self.local_path)

    def delete(self):
        if self.local_path.is_dir() and not self.local_path.is_symlink():
            shutil.rmtree(self.local_path)
        else:
            os.remove(self.local_path)


class StreamSource(SourceHandle):
    """
    Non-local source, e.g. a stream handed out by a content provider.
    Without a `deleter` the original cannot be removed by us, so trashing
    it is a copy and the caller keeps responsibility for the original.
    """

    def __init__(self, opener, display_name=None, uri=None, size=None, deleter=None):
        self._opener = opener
        self._display_name = display_name
        self.uri = uri
        self._size = size
        self._deleter = deleter

    def __repr__(self):
        return f"StreamSource({self.display_name()!r})"

    def display_name(self):
        if self._display_name:
            return self._display_name
        if self.uri:
            return last_segment(self.uri)
        return None

    def open(self):
        try:
            return self._opener()
        except Exception as e:
            raise SourceUnreadable(f"Cannot open stream {self.display_name()!r}: {e}",
                                   name=self.display_name()) from e

    def size(self):
        return self._size

    def describe(self):
        return self.uri

    def delete(self):
        if self._deleter is not None:
            self._deleter()


def source_from_uri(uri):
    """Build a SourceHandle from a plain path or a file:// URI."""
    text = str(uri)
    parsed = urlparse(text)
    if parsed.scheme == "file":
        return LocalFileSource(unquote(parsed.path))
    # single letters are Windows drive letters, not schemes
    if not parsed.scheme or len(parsed.scheme) == 1:
        return LocalFileSource(text)
    raise SourceUnreadable(f"Unsupported source scheme: {parsed.scheme}://", path=text)
