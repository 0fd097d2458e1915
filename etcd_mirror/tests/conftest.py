"""Shared fixtures: an in-memory keyspace standing in for etcd."""

from typing import Dict, List, Optional

import pytest

from etcd_mirror.core.clients import KeyspaceClient
from etcd_mirror.core.errors import KeyspaceError
from etcd_mirror.core.settings import TLSSettings
from etcd_mirror.core.types import KeyNode, ProbeResult


class MemoryKeyspace(KeyspaceClient):
    """etcd v2 style keyspace: directories are implied by their leaves."""

    protocol = "2"

    def __init__(self, data: Optional[Dict[str, str]] = None, failing: tuple = ()):
        super().__init__("http://memory:2379", False, TLSSettings())
        self.data: Dict[str, str] = dict(data or {})
        self.failing = set(failing)
        self.closed = False

    def _check(self, key: str) -> None:
        if key in self.failing:
            raise KeyspaceError(f"Can't reach key {key}")

    def get(self, key: str) -> Optional[str]:
        self._check(key)
        return self.data.get(key)

    def exists(self, key: str) -> bool:
        self._check(key)
        prefix = key.rstrip("/") + "/"
        return key in self.data or any(k.startswith(prefix) for k in self.data)

    def list(self, key: str) -> List[KeyNode]:
        self._check(key)
        prefix = key.rstrip("/") + "/"
        children: Dict[str, KeyNode] = {}
        for k, v in self.data.items():
            if not k.startswith(prefix):
                continue
            head, _, rest = k[len(prefix):].partition("/")
            child = prefix + head
            if rest:
                children[child] = KeyNode(child, None, True)
            else:
                children[child] = KeyNode(child, v, False)
        return [children[k] for k in sorted(children)]

    def create_if_absent(self, key: str, value: str) -> bool:
        self._check(key)
        if key in self.data:
            return False
        self.data[key] = value
        return True

    def close(self) -> None:
        self.closed = True


class StaticProbe:
    """Version probe answering with a fixed version."""

    def __init__(self, version: str = "2.3.7", secure: bool = False):
        self.version = version
        self.secure = secure
        self.calls: List[str] = []

    def probe(self, endpoint: str) -> ProbeResult:
        self.calls.append(endpoint)
        return ProbeResult(self.version, self.secure)


def factory_for(keyspace: MemoryKeyspace):
    opened = []

    def _factory(endpoint, version, secure, tls=None):
        opened.append((endpoint, version, secure))
        return keyspace

    _factory.opened = opened
    return _factory


@pytest.fixture
def keyspace():
    return MemoryKeyspace({"/foo": "some", "/that/here": "moar"})


@pytest.fixture
def empty_keyspace():
    return MemoryKeyspace()


@pytest.fixture
def tls_files(tmp_path):
    cert = tmp_path / "client.crt"
    key = tmp_path / "client.key"
    cert.write_text("not a real certificate")
    key.write_text("not a real key")
    return TLSSettings(str(cert), str(key))
