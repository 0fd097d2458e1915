"""Backup of an etcd v2 keyspace into a zipped filesystem mirror."""

import logging
import shutil
import time
from pathlib import Path
from typing import List, Optional, Union

from . import archive, codec
from .clients import ClientFactory, KeyspaceClient, open_client
from .discovery import VersionProbe
from .errors import (
    ArchiveError,
    DistroUndeterminedError,
    EndpointProbeError,
    KeyPathError,
    KeyspaceError,
    UnsupportedVersionError,
)
from .settings import TLSSettings
from .types import SkippedKey, major_version

_logger = logging.getLogger("etcd_mirror.backup")


def store(base_dir: Union[str, Path], key: str, value: str) -> Path:
    """Write ``value`` as the content file of ``key`` below ``base_dir``.

    Parent directories are created as needed. Returns the content file path.

    Raises:
        KeyPathError: if ``key`` can't be mapped to a path, nothing is written
        OSError: if the directory or file can't be written
    """
    content_file = codec.content_path(base_dir, key)
    content_file.parent.mkdir(parents=True, exist_ok=True)
    content_file.write_bytes((value or "").encode("utf-8"))
    return content_file


class BackupEngine:
    """Walks an etcd keyspace and mirrors it into ``<work_dir>/<basename>.zip``.

    Keys that can't be stored are logged and collected in ``skipped``; the
    walk itself carries on.
    """

    def __init__(
        self,
        work_dir: Union[str, Path] = ".",
        probe: Optional[VersionProbe] = None,
        client_factory: ClientFactory = open_client,
        tls: Optional[TLSSettings] = None,
    ):
        self._work_dir = Path(work_dir)
        self._tls = tls or TLSSettings.from_env()
        self._probe = probe or VersionProbe(tls=self._tls)
        self._client_factory = client_factory
        self.skipped: List[SkippedKey] = []
        self.stored = 0

    def backup(self, endpoint: str, basename: Optional[str] = None) -> str:
        """Back up ``endpoint`` and return the archive basename (no extension).

        Example:

            based = BackupEngine("/tmp").backup("http://localhost:2379")
        """
        self.skipped = []
        self.stored = 0
        try:
            version, secure = self._probe.probe(endpoint)
        except EndpointProbeError as e:
            raise EndpointProbeError(f"Can't understand endpoint {endpoint}: {e}") from e

        major = major_version(version)
        if major == "3":
            raise UnsupportedVersionError(f"Endpoint version {version} not supported for backup")
        if major != "2":
            raise DistroUndeterminedError(
                f"Can't determine protocol of {endpoint} (etcd version {version!r})"
            )

        basename = basename or str(int(time.time()))
        mirror_dir = self._work_dir / basename
        archive_file = mirror_dir.with_name(basename + archive.ARCHIVE_SUFFIX)
        # the mirror directory is removed after sealing, never adopt one we did not create
        for existing in (mirror_dir, archive_file):
            if existing.exists():
                raise ArchiveError(f"Can't back up into {existing}: it already exists")

        with self._client_factory(endpoint, version, secure, self._tls) as client:
            root_nodes = client.list("/")
            self._work_dir.mkdir(parents=True, exist_ok=True)
            mirror_dir.mkdir()
            self._walk(client, root_nodes, mirror_dir)

        archive_file = archive.seal(mirror_dir)
        shutil.rmtree(mirror_dir, ignore_errors=True)

        _logger.info(
            "etcd_backup_completed",
            extra={
                "event": {"category": ["backup"], "action": "completed"},
                "etcd": {"endpoint": endpoint, "version": version, "secure": secure},
                "backup": {
                    "archive": str(archive_file),
                    "keys_stored": self.stored,
                    "keys_skipped": len(self.skipped),
                },
            },
        )
        return basename

    def _walk(self, client: KeyspaceClient, nodes, mirror_dir: Path) -> None:
        pending = list(reversed(nodes))
        while pending:
            node = pending.pop()
            if node.is_dir:
                try:
                    codec.to_path(mirror_dir, node.key).mkdir(parents=True, exist_ok=True)
                    children = client.list(node.key)
                except (KeyPathError, KeyspaceError, OSError) as e:
                    self._skip(node.key, e)
                    continue
                pending.extend(reversed(children))
                continue
            try:
                path = store(mirror_dir, node.key, node.value)
            except (KeyPathError, OSError) as e:
                self._skip(node.key, e)
                continue
            self.stored += 1
            _logger.debug(
                "etcd_key_stored",
                extra={"etcd": {"key": node.key}, "backup": {"path": str(path)}},
            )

    def _skip(self, key: str, error: Exception) -> None:
        self.skipped.append(SkippedKey(key, str(error)))
        _logger.error(
            "etcd_key_backup_failed",
            extra={
                "event": {"category": ["backup"], "action": "key_skipped"},
                "etcd": {"key": key},
                "error": {"message": str(error), "type": type(error).__name__},
            },
        )


def backup(
    endpoint: str,
    work_dir: Union[str, Path] = ".",
    basename: Optional[str] = None,
    tls: Optional[TLSSettings] = None,
) -> str:
    return BackupEngine(work_dir, tls=tls).backup(endpoint, basename)
