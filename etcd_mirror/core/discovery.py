"""Discovery of etcd server versions and Kubernetes distributions."""

import logging
import ssl
from typing import Optional

import httpx

from .clients import ClientFactory, open_client
from .errors import (
    CertificateError,
    DistroUndeterminedError,
    EndpointProbeError,
    KeyspaceError,
)
from .settings import TLSSettings, is_secure, parse_endpoint
from .types import (
    KUBERNETES_PREFIX,
    OPENSHIFT_PREFIX,
    VERSION_FIELD,
    VERSION_PATH,
    Distro,
    EndpointInfo,
    KeyStats,
    ProbeResult,
    major_version,
)


class VersionProbe:
    """Asks an endpoint at path /version which etcd it runs.

    The URL scheme alone decides the transport: ``https`` endpoints are queried
    with the configured client certificate and without verifying the server
    certificate, everything else over plain HTTP. There is no retry and no
    fallback from one mode to the other.
    """

    def __init__(
        self,
        tls: Optional[TLSSettings] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._logger = logging.getLogger("etcd_mirror.discovery")
        self._tls = tls or TLSSettings.from_env()
        self._timeout = timeout
        self._transport = transport

    def _ssl_context(self) -> ssl.SSLContext:
        cert, key = self._tls.cert_pair()
        context = ssl.create_default_context()
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        try:
            context.load_cert_chain(cert, key)
        except (ssl.SSLError, OSError) as e:
            raise CertificateError(f"Can't load client certificate pair {cert}, {key}: {e}") from e
        return context

    def _http_client(self, secure: bool) -> httpx.Client:
        client_kwargs = {"timeout": self._timeout}
        if secure:
            client_kwargs["verify"] = self._ssl_context()
        if self._transport is not None:
            client_kwargs["transport"] = self._transport
        return httpx.Client(**client_kwargs)

    def probe(self, endpoint: str) -> ProbeResult:
        """Return the server version and whether the secure path was used.

        Example:

            version, secure = VersionProbe().probe("http://localhost:2379")
        """
        parse_endpoint(endpoint)
        secure = is_secure(endpoint)
        url = str(endpoint).rstrip("/") + VERSION_PATH

        with self._http_client(secure) as client:
            try:
                response = client.get(url)
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise EndpointProbeError(f"Can't query {url} endpoint: {e}") from e
        try:
            payload = response.json()
        except ValueError as e:
            raise EndpointProbeError(f"Can't decode response from etcd at {url}: {e}") from e
        if not isinstance(payload, dict) or not isinstance(payload.get(VERSION_FIELD), str):
            raise EndpointProbeError(
                f"Can't decode response from etcd at {url}: no {VERSION_FIELD} field"
            )

        version = payload[VERSION_FIELD]
        self._logger.debug(
            "etcd_version_probed",
            extra={
                "event": {"category": ["discovery"], "action": "version_probed"},
                "etcd": {"endpoint": endpoint, "version": version, "secure": secure},
            },
        )
        return ProbeResult(version, secure)


class DistroClassifier:
    """Tells which Kubernetes distribution, if any, stores its state in an etcd."""

    def __init__(
        self,
        probe: Optional[VersionProbe] = None,
        client_factory: ClientFactory = open_client,
        tls: Optional[TLSSettings] = None,
    ):
        self._logger = logging.getLogger("etcd_mirror.discovery")
        self._tls = tls or TLSSettings.from_env()
        self._probe = probe or VersionProbe(tls=self._tls)
        self._client_factory = client_factory

    def probe(self, endpoint: str) -> ProbeResult:
        try:
            return self._probe.probe(endpoint)
        except EndpointProbeError as e:
            raise EndpointProbeError(f"Can't understand endpoint {endpoint}: {e}") from e

    def classify(self, endpoint: str) -> Distro:
        version, secure = self.probe(endpoint)
        return self._classify(endpoint, version, secure)

    def _classify(self, endpoint: str, version: str, secure: bool) -> Distro:
        if major_version(version) is None:
            raise DistroUndeterminedError(
                f"Can't determine Kubernetes distro of {endpoint} (etcd version {version!r})"
            )

        with self._client_factory(endpoint, version, secure, self._tls) as client:
            distro = self._classify_keyspace(client)

        self._logger.info(
            "kubernetes_distro_detected",
            extra={
                "event": {"category": ["discovery"], "action": "distro_detected"},
                "etcd": {"endpoint": endpoint, "version": version, "secure": secure},
                "distro": distro.value,
            },
        )
        return distro

    def _classify_keyspace(self, client) -> Distro:
        try:
            if not client.exists(KUBERNETES_PREFIX):
                return Distro.NOT_A_DISTRO
        except KeyspaceError:
            self._logger.debug("kubernetes_prefix_unreadable", exc_info=True)
            return Distro.NOT_A_DISTRO
        try:
            if not client.exists(OPENSHIFT_PREFIX):
                return Distro.VANILLA
        except KeyspaceError:
            self._logger.debug("openshift_prefix_unreadable", exc_info=True)
            return Distro.VANILLA
        return Distro.OPENSHIFT

    def explore(self, endpoint: str) -> EndpointInfo:
        version, secure = self.probe(endpoint)
        distro = self._classify(endpoint, version, secure)
        return EndpointInfo(endpoint, version, secure, distro)

    def count_keys(self, endpoint: str, prefix: str = "/") -> KeyStats:
        """Count leaf keys and total value bytes below ``prefix``."""
        version, secure = self.probe(endpoint)
        if major_version(version) is None:
            raise DistroUndeterminedError(
                f"Can't determine protocol of {endpoint} (etcd version {version!r})"
            )
        keys = 0
        size = 0
        with self._client_factory(endpoint, version, secure, self._tls) as client:
            pending = [prefix]
            while pending:
                for node in client.list(pending.pop()):
                    if node.is_dir:
                        pending.append(node.key)
                        continue
                    keys += 1
                    size += len((node.value or "").encode("utf-8"))
        return KeyStats(keys, size)


def probe_etcd(endpoint: str, tls: Optional[TLSSettings] = None) -> ProbeResult:
    return VersionProbe(tls=tls).probe(endpoint)


def probe_kubernetes_distro(endpoint: str, tls: Optional[TLSSettings] = None) -> Distro:
    return DistroClassifier(tls=tls).classify(endpoint)
