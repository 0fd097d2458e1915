"""etcd-mirror - back up and restore etcd keyspaces and discover what runs on them."""

__version__ = "0.1.0"

from .core.backup import BackupEngine, backup, store
from .core.clients import Etcd2Client, Etcd3Client, KeyspaceClient, open_client
from .core.discovery import (
    DistroClassifier,
    VersionProbe,
    probe_etcd,
    probe_kubernetes_distro,
)
from .core.errors import (
    ArchiveError,
    CertificateError,
    DistroUndeterminedError,
    EndpointProbeError,
    EtcdMirrorError,
    KeyPathError,
    KeyspaceError,
    TraversalError,
    UnsupportedVersionError,
)
from .core.logging import setup_logging
from .core.restore import RestoreEngine, restore
from .core.settings import TLSSettings
from .core.types import Distro

__all__ = [
    "ArchiveError",
    "BackupEngine",
    "CertificateError",
    "Distro",
    "DistroClassifier",
    "DistroUndeterminedError",
    "EndpointProbeError",
    "Etcd2Client",
    "Etcd3Client",
    "EtcdMirrorError",
    "KeyPathError",
    "KeyspaceClient",
    "KeyspaceError",
    "RestoreEngine",
    "TLSSettings",
    "TraversalError",
    "UnsupportedVersionError",
    "VersionProbe",
    "backup",
    "open_client",
    "probe_etcd",
    "probe_kubernetes_distro",
    "restore",
    "setup_logging",
    "store",
]
