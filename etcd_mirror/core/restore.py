"""Restore of a zipped filesystem mirror into an etcd v2 keyspace."""

import logging
import os
from pathlib import Path
from typing import List, Optional, Union

from . import archive, codec
from .clients import ClientFactory, KeyspaceClient, open_client
from .discovery import VersionProbe
from .errors import (
    ArchiveError,
    EndpointProbeError,
    KeyPathError,
    KeyspaceError,
    TraversalError,
    UnsupportedVersionError,
)
from .settings import TLSSettings
from .types import CONTENT_FILE, SkippedKey, major_version

_logger = logging.getLogger("etcd_mirror.restore")


class RestoreEngine:
    """Replays an archived mirror into an etcd endpoint.

    Restoring never overwrites: every key is created only if it is absent.
    Keys that can't be read or written are logged, collected in ``skipped``
    and left out of the returned count.
    """

    def __init__(
        self,
        probe: Optional[VersionProbe] = None,
        client_factory: ClientFactory = open_client,
        tls: Optional[TLSSettings] = None,
    ):
        self._tls = tls or TLSSettings.from_env()
        self._probe = probe or VersionProbe(tls=self._tls)
        self._client_factory = client_factory
        self.skipped: List[SkippedKey] = []

    def restore(
        self,
        archive_basename: str,
        target_dir: Union[str, Path],
        endpoint: str,
    ) -> int:
        """Restore ``<target_dir>/<archive_basename>.zip`` into ``endpoint``.

        Returns the number of keys restored. Example:

            restored = RestoreEngine().restore("1498055655", "/tmp", "http://localhost:2379")
        """
        self.skipped = []
        target_dir = Path(target_dir)
        archive_file = target_dir / (archive_basename + archive.ARCHIVE_SUFFIX)
        mirror_dir = target_dir / archive_basename
        # files left over from an earlier unpack would be replayed as keys
        if mirror_dir.exists():
            raise ArchiveError(f"Can't unpack {archive_file}: {mirror_dir} already exists")
        archive.unseal(archive_file, target_dir)
        mirror_dir = mirror_dir.resolve()

        try:
            version, secure = self._probe.probe(endpoint)
        except EndpointProbeError as e:
            raise EndpointProbeError(f"Can't understand endpoint {endpoint}: {e}") from e
        if major_version(version) != "2":
            raise UnsupportedVersionError(f"Endpoint version {version} not supported")

        _logger.debug(
            "etcd_restore_started",
            extra={"restore": {"source": str(mirror_dir)}, "etcd": {"endpoint": endpoint}},
        )
        with self._client_factory(endpoint, version, secure, self._tls) as client:
            restored = self._replay(client, mirror_dir)

        _logger.info(
            "etcd_restore_completed",
            extra={
                "event": {"category": ["restore"], "action": "completed"},
                "etcd": {"endpoint": endpoint, "version": version, "secure": secure},
                "restore": {
                    "archive": str(archive_file),
                    "keys_restored": restored,
                    "keys_skipped": len(self.skipped),
                },
            },
        )
        return restored

    def _replay(self, client: KeyspaceClient, mirror_dir: Path) -> int:
        if not mirror_dir.is_dir():
            raise TraversalError(f"Can't traverse directory {mirror_dir}: not a directory")

        walk_errors: List[OSError] = []
        restored = 0
        for dirpath, dirnames, filenames in os.walk(mirror_dir, onerror=walk_errors.append):
            dirnames.sort()
            if CONTENT_FILE not in filenames:
                continue
            content_file = Path(dirpath) / CONTENT_FILE
            try:
                key = codec.key_for_content(content_file, mirror_dir)
            except KeyPathError as e:
                self._skip(str(content_file), e)
                continue
            try:
                value = content_file.read_bytes().decode("utf-8")
            except (OSError, UnicodeDecodeError) as e:
                self._skip(key, e)
                continue
            try:
                created = client.create_if_absent(key, value)
            except KeyspaceError as e:
                self._skip(key, e)
                continue
            if not created:
                self._skip(key, KeyspaceError(f"Key {key} already exists"))
                continue
            restored += 1
            _logger.debug(
                "etcd_key_restored",
                extra={"etcd": {"key": key}, "restore": {"path": str(content_file)}},
            )

        # only an unreadable root aborts, unreadable subtrees are skipped
        for error in walk_errors:
            if Path(error.filename or "") == mirror_dir:
                raise TraversalError(f"Can't traverse directory {mirror_dir}: {error}") from error
            self._skip(str(error.filename), error)
        return restored

    def _skip(self, key: str, error: Exception) -> None:
        self.skipped.append(SkippedKey(key, str(error)))
        _logger.error(
            "etcd_key_restore_failed",
            extra={
                "event": {"category": ["restore"], "action": "key_skipped"},
                "etcd": {"key": key},
                "error": {"message": str(error), "type": type(error).__name__},
            },
        )


def restore(
    archive_basename: str,
    target_dir: Union[str, Path],
    endpoint: str,
    tls: Optional[TLSSettings] = None,
) -> int:
    return RestoreEngine(tls=tls).restore(archive_basename, target_dir, endpoint)
