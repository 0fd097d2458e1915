"""Shared constants and value types for etcd keyspace mirroring."""

from enum import Enum
from typing import NamedTuple, Optional

# Well-known roots used to tell which cluster platform sits on top of etcd
KUBERNETES_PREFIX = "/registry"
OPENSHIFT_PREFIX = "/openshift.io"

# ':' is not portable in file names, it is persisted as this placeholder
ESCAPE_COLON = "ESC_COLON"

# Name of the file holding a leaf key's value inside its mirror directory
CONTENT_FILE = "content"

VERSION_PATH = "/version"
VERSION_FIELD = "etcdserver"

DEFAULT_PORT = 2379


class Distro(str, Enum):
    """Cluster distribution detected on an etcd endpoint."""

    NOT_A_DISTRO = "not-a-distro"
    VANILLA = "vanilla"
    OPENSHIFT = "openshift"


class ProbeResult(NamedTuple):
    version: str
    secure: bool


class KeyNode(NamedTuple):
    """A single node of the keyspace tree as returned by a listing."""

    key: str
    value: Optional[str] = None
    is_dir: bool = False


class KeyStats(NamedTuple):
    keys: int
    size_bytes: int


class EndpointInfo(NamedTuple):
    endpoint: str
    version: str
    secure: bool
    distro: Distro


class SkippedKey(NamedTuple):
    key: str
    reason: str


def major_version(version: Optional[str]) -> Optional[str]:
    """Return "2" or "3" for a server version string, None otherwise."""
    if not version:
        return None
    major = str(version).strip().split(".", 1)[0]
    if major in ("2", "3"):
        return major
    return None
