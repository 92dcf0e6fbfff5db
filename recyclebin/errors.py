class RecycleBinError(Exception):
    """Base error for the project."""

    def __init__(self, message, name=None, path=None):
        super().__init__(message)
        self.name = name
        self.path = path


class StorageUnavailable(RecycleBinError):
    """Trash root cannot be created, or the medium is not writable."""


class SourceUnreadable(RecycleBinError):
    pass


class DestinationWriteFailed(RecycleBinError):
    pass


class SourceDeleteFailed(RecycleBinError):
    """
    The copy finished but the original could not be removed.
    The copy is kept; `item` holds the TrashedItem when raised from trash().
    """

    def __init__(self, message, name=None, path=None, item=None):
        super().__init__(message, name=name, path=path)
        self.item = item


class NameCollision(RecycleBinError):
    pass


class NotFound(RecycleBinError):
    pass


class DestinationExists(RecycleBinError):
    pass


class PermissionDenied(RecycleBinError):
    pass


class InvalidName(RecycleBinError):
    pass


class OperationCancelled(RecycleBinError):
    pass


class NoOriginalLocation(RecycleBinError):
    pass


class NestedPath(RecycleBinError):
    """Source and destination overlap: one is the other, or lies inside it."""
