"""Zip archives of mirror directories."""

import logging
import os
import zipfile
from pathlib import Path
from typing import Union

from .errors import ArchiveError

_logger = logging.getLogger("etcd_mirror.archive")

ARCHIVE_SUFFIX = ".zip"


def seal(mirror_dir: Union[str, Path]) -> Path:
    """Pack ``mirror_dir`` into ``<mirror_dir>.zip`` next to it.

    Entries are rooted at the directory's own name, so unpacking the archive
    into the parent directory recreates ``mirror_dir``.
    """
    mirror_dir = Path(mirror_dir)
    if not mirror_dir.is_dir():
        raise ArchiveError(f"Can't archive {mirror_dir}: not a directory")
    archive_file = mirror_dir.with_name(mirror_dir.name + ARCHIVE_SUFFIX)
    root = mirror_dir.parent
    try:
        with zipfile.ZipFile(archive_file, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for dirpath, dirnames, filenames in os.walk(mirror_dir):
                dirnames.sort()
                current = Path(dirpath)
                # keep directory entries so that empty directories survive
                zf.write(current, current.relative_to(root).as_posix() + "/")
                for name in sorted(filenames):
                    path = current / name
                    zf.write(path, path.relative_to(root).as_posix())
    except (OSError, zipfile.BadZipFile) as e:
        raise ArchiveError(f"Can't create archive {archive_file}: {e}") from e
    _logger.debug(
        "archive_sealed",
        extra={"archive": {"path": str(archive_file), "source": str(mirror_dir)}},
    )
    return archive_file


def unseal(archive_file: Union[str, Path], target_dir: Union[str, Path]) -> Path:
    """Unpack ``archive_file`` into ``target_dir`` and return ``target_dir``."""
    archive_file = Path(archive_file)
    target_dir = Path(target_dir)
    _logger.debug(
        "archive_unsealing",
        extra={"archive": {"path": str(archive_file), "target": str(target_dir)}},
    )
    try:
        with zipfile.ZipFile(archive_file) as zf:
            root = target_dir.resolve()
            for member in zf.infolist():
                destination = (root / member.filename).resolve()
                if destination != root and root not in destination.parents:
                    raise ArchiveError(
                        f"Can't unpack archive {archive_file}: entry {member.filename} "
                        f"escapes {target_dir}"
                    )
            zf.extractall(target_dir)
    except (OSError, zipfile.BadZipFile) as e:
        raise ArchiveError(f"Can't unpack archive {archive_file}: {e}") from e
    return target_dir
