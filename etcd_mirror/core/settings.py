"""Connection settings for etcd endpoints."""

import os
from pathlib import Path
from typing import Optional, Tuple
from urllib.parse import urlparse

from .errors import CertificateError, EndpointProbeError
from .types import DEFAULT_PORT


class TLSSettings:
    """Client certificate pair used against ``https`` endpoints.

    The pair is only consulted when an endpoint's scheme asks for a secure
    transport. Server certificates are never verified.
    """

    def __init__(
        self,
        cert_path: Optional[str] = None,
        key_path: Optional[str] = None,
    ):
        """Initialize TLS settings.

        Args:
            cert_path: client certificate (defaults to EtcdSettings__ClientCertPath env var)
            key_path: client private key (defaults to EtcdSettings__ClientKeyPath env var)
        """
        self.cert_path = cert_path or os.getenv("EtcdSettings__ClientCertPath")
        self.key_path = key_path or os.getenv("EtcdSettings__ClientKeyPath")

    @classmethod
    def from_env(cls) -> "TLSSettings":
        return cls()

    def cert_pair(self) -> Tuple[str, str]:
        """Return ``(cert, key)`` paths, failing if either is unusable."""
        if not self.cert_path or not self.key_path:
            raise CertificateError(
                "Client certificate and key must be set via "
                "EtcdSettings__ClientCertPath and EtcdSettings__ClientKeyPath"
            )
        for label, path in (("certificate", self.cert_path), ("key", self.key_path)):
            if not Path(path).is_file():
                raise CertificateError(f"Can't read client {label} {path}")
        return self.cert_path, self.key_path

    def __repr__(self) -> str:
        return f"TLSSettings(cert_path={self.cert_path!r}, key_path={self.key_path!r})"


def parse_endpoint(endpoint: str) -> Tuple[str, int, str]:
    """Parse host, port, and scheme from endpoint URL."""
    try:
        parsed = urlparse(str(endpoint))
        port = parsed.port or DEFAULT_PORT
    except ValueError as e:
        raise EndpointProbeError(f"Can't parse endpoint {endpoint}: {e}") from e
    if not parsed.hostname:
        raise EndpointProbeError(f"Can't parse endpoint {endpoint}: no host")
    scheme = parsed.scheme or "http"
    return parsed.hostname, int(port), scheme


def is_secure(endpoint: str) -> bool:
    return urlparse(str(endpoint)).scheme == "https"


def default_endpoint() -> str:
    return os.getenv("EtcdSettings__HostName", "http://localhost:2379")


def default_work_dir() -> str:
    return os.getenv("EtcdSettings__BackupDir", ".")
