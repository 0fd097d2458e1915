"""Core components for etcd keyspace discovery, backup and restore."""

from .backup import BackupEngine, store
from .codec import to_key, to_path
from .discovery import DistroClassifier, VersionProbe
from .logging import setup_logging
from .restore import RestoreEngine

__all__ = [
    "BackupEngine",
    "DistroClassifier",
    "RestoreEngine",
    "VersionProbe",
    "setup_logging",
    "store",
    "to_key",
    "to_path",
]
