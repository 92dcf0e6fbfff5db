"""
RecycleBin package initializer.
Expose core modules for convenient imports in tests and other code.
"""

__version__ = "1.0.0"
__author__ = "KuzuiYaridomi"

from . import errors, models, sources, store, mover, controller, database, history, utils
from .controller import TrashController
from .models import CollisionPolicy, TrashedItem
from .sources import LocalFileSource, StreamSource, source_from_uri
from .store import TrashStore
# Note: cli is not imported here; it is only needed by main.py

__all__ = [
    "errors",
    "models",
    "sources",
    "store",
    "mover",
    "controller",
    "database",
    "history",
    "utils",
    "TrashController",
    "CollisionPolicy",
    "TrashedItem",
    "LocalFileSource",
    "StreamSource",
    "source_from_uri",
    "TrashStore",
]
