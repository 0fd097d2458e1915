"""Keyspace clients for the etcd v2 and v3 protocols.

Both variants expose the same small capability (get, exists, list,
create_if_absent) so that discovery, backup and restore never have to branch
on the protocol version themselves.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

import etcd
import etcd3
import urllib3
from etcd3.errors import Etcd3Exception

from .errors import DistroUndeterminedError, KeyspaceError
from .settings import TLSSettings, parse_endpoint
from .types import KeyNode, major_version

_V2_ERRORS = (etcd.EtcdException, urllib3.exceptions.HTTPError, OSError)
_V3_ERRORS = (Etcd3Exception, OSError)


class KeyspaceClient(ABC):
    """Protocol independent view of an etcd keyspace."""

    protocol: str = ""

    def __init__(self, endpoint: str, secure: bool = False, tls: Optional[TLSSettings] = None):
        self._logger = logging.getLogger("etcd_mirror.clients")
        self.endpoint = endpoint
        self.secure = secure
        self._tls = tls or TLSSettings.from_env()
        self._host, self._port, _ = parse_endpoint(endpoint)

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the value of ``key`` or None if it does not exist."""

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Return True if ``key`` (or anything below it) exists."""

    @abstractmethod
    def list(self, key: str) -> List[KeyNode]:
        """Return the nodes directly below ``key``."""

    @abstractmethod
    def create_if_absent(self, key: str, value: str) -> bool:
        """Create ``key`` with ``value``. Returns False if the key already exists."""

    def close(self) -> None:
        pass

    def __enter__(self) -> "KeyspaceClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(endpoint={self.endpoint!r}, secure={self.secure})"


class Etcd2Client(KeyspaceClient):
    """Keys API (v2) client backed by python-etcd."""

    protocol = "2"

    def __init__(self, endpoint: str, secure: bool = False, tls: Optional[TLSSettings] = None):
        super().__init__(endpoint, secure, tls)
        client_kwargs = {
            "host": self._host,
            "port": self._port,
            "protocol": "https" if secure else "http",
        }
        if secure:
            client_kwargs["cert"] = self._tls.cert_pair()
        self._client = etcd.Client(**client_kwargs)
        if secure:
            # python-etcd only disables verification when no CA is given on
            # old urllib3 releases, make it explicit
            cert, key = client_kwargs["cert"]
            self._client.http = urllib3.PoolManager(
                num_pools=10,
                cert_file=cert,
                key_file=key,
                cert_reqs="CERT_NONE",
            )

    def _read(self, key: str):
        try:
            return self._client.read(key)
        except etcd.EtcdKeyNotFound:
            return None
        except _V2_ERRORS as e:
            raise KeyspaceError(f"Can't read key {key} from {self.endpoint}: {e}") from e

    def get(self, key: str) -> Optional[str]:
        result = self._read(key)
        if result is None or result.dir:
            return None
        return result.value

    def exists(self, key: str) -> bool:
        return self._read(key) is not None

    def list(self, key: str) -> List[KeyNode]:
        result = self._read(key)
        if result is None:
            return []
        if not result.dir:
            return [KeyNode(result.key, result.value, False)]
        nodes = []
        for item in result.leaves:
            # an empty directory yields itself
            if item is result:
                continue
            nodes.append(KeyNode(item.key, None if item.dir else item.value, bool(item.dir)))
        return nodes

    def create_if_absent(self, key: str, value: str) -> bool:
        try:
            self._client.write(key, value, prevExist=False)
        except etcd.EtcdAlreadyExist:
            return False
        except _V2_ERRORS as e:
            raise KeyspaceError(f"Can't create key {key} on {self.endpoint}: {e}") from e
        return True


class Etcd3Client(KeyspaceClient):
    """KV API (v3) client backed by etcd3-py.

    v3 has no directories. Keys are grouped by ``<key>/`` the way v2
    directories are, and ``list`` returns every key below it as a leaf.
    """

    protocol = "3"

    def __init__(self, endpoint: str, secure: bool = False, tls: Optional[TLSSettings] = None):
        super().__init__(endpoint, secure, tls)
        client_kwargs = {
            "host": self._host,
            "port": self._port,
            "protocol": "https" if secure else "http",
        }
        if secure:
            client_kwargs["cert"] = self._tls.cert_pair()
            client_kwargs["verify"] = False
        self._client = etcd3.Client(**client_kwargs)

    def _range(self, key: str, **kwargs):
        try:
            return self._client.range(key, **kwargs)
        except _V3_ERRORS as e:
            raise KeyspaceError(f"Can't read key {key} from {self.endpoint}: {e}") from e

    def get(self, key: str) -> Optional[str]:
        response = self._range(key)
        kvs = getattr(response, "kvs", None) if response else None
        if not kvs:
            return None
        value = kvs[0].value
        return value.decode("utf-8") if isinstance(value, (bytes, bytearray)) else value

    @staticmethod
    def _dir_prefix(key: str) -> str:
        # "/registry" must not match "/registry-foo"
        return key.rstrip("/") + "/"

    def exists(self, key: str) -> bool:
        if self.get(key) is not None:
            return True
        response = self._range(self._dir_prefix(key), prefix=True, keys_only=True, limit=1)
        return bool(getattr(response, "kvs", None)) if response else False

    def list(self, key: str) -> List[KeyNode]:
        response = self._range(self._dir_prefix(key), prefix=True)
        nodes = []
        for kv in (getattr(response, "kvs", None) or []) if response else []:
            k = kv.key.decode("utf-8") if isinstance(kv.key, (bytes, bytearray)) else kv.key
            v = kv.value.decode("utf-8") if isinstance(kv.value, (bytes, bytearray)) else kv.value
            nodes.append(KeyNode(k, v, False))
        return nodes

    def create_if_absent(self, key: str, value: str) -> bool:
        try:
            txn = self._client.Txn()
            txn.compare(txn.key(key).version == 0)
            txn.success(txn.put(key, value))
            response = txn.commit()
        except _V3_ERRORS as e:
            raise KeyspaceError(f"Can't create key {key} on {self.endpoint}: {e}") from e
        return bool(getattr(response, "succeeded", False))

    def close(self) -> None:
        try:
            self._client.close()
        except _V3_ERRORS:
            self._logger.debug("etcd3 client close raised", exc_info=True)


ClientFactory = Callable[[str, str, bool, Optional[TLSSettings]], KeyspaceClient]


def open_client(
    endpoint: str,
    version: str,
    secure: bool,
    tls: Optional[TLSSettings] = None,
) -> KeyspaceClient:
    """Open the client family matching a server version string."""
    major = major_version(version)
    if major == "3":
        return Etcd3Client(endpoint, secure, tls)
    if major == "2":
        return Etcd2Client(endpoint, secure, tls)
    raise DistroUndeterminedError(
        f"Can't determine protocol of {endpoint} from version {version!r}"
    )
