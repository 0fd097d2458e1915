"""Exception hierarchy for etcd-mirror."""


class EtcdMirrorError(Exception):
    """Base class for all etcd-mirror errors."""


class EndpointProbeError(EtcdMirrorError):
    """The endpoint could not be reached or its version could not be decoded."""


class CertificateError(EndpointProbeError):
    """The client certificate pair is not configured or cannot be loaded."""


class DistroUndeterminedError(EtcdMirrorError):
    """The endpoint reports a protocol version we do not know how to talk to."""


class UnsupportedVersionError(EtcdMirrorError):
    """The endpoint speaks a protocol version the operation does not implement."""


class KeyPathError(EtcdMirrorError, ValueError):
    """An etcd key cannot be mapped to (or from) a mirror path."""


class ArchiveError(EtcdMirrorError):
    """An archive cannot be written or unpacked."""


class TraversalError(EtcdMirrorError):
    """The mirror directory tree cannot be walked."""


class KeyspaceError(EtcdMirrorError):
    """A read or write against the etcd keyspace failed."""
