"""Mapping between etcd keys and paths of the filesystem mirror.

A key such as ``/registry/pods/default/web:1`` becomes the directory
``<base>/registry/pods/default/webESC_COLON1``; its value lives in the
``content`` file inside that directory.
"""

from pathlib import Path
from typing import List, Union

from .errors import KeyPathError
from .types import CONTENT_FILE, ESCAPE_COLON

PathLike = Union[str, Path]


def escape_segment(segment: str) -> str:
    return segment.replace(":", ESCAPE_COLON)


def unescape_segment(segment: str) -> str:
    return segment.replace(ESCAPE_COLON, ":")


def key_segments(key: str) -> List[str]:
    """Split and validate an etcd key.

    Keys are normalised first: repeated and trailing slashes are dropped, the
    way the v2 keys API treats them, so ``//a/`` and ``/a`` map to the same
    path and ``to_key`` gives back the normalised form.

    Raises:
        KeyPathError: for empty or relative keys, keys without any segment,
            ``.``/``..`` segments and segments already holding the placeholder
    """
    if not key:
        raise KeyPathError("Empty key can't be mapped to a path")
    if not key.startswith("/"):
        raise KeyPathError(f"Key {key!r} is not absolute")
    segments = [s for s in key.split("/") if s]
    if not segments:
        raise KeyPathError(f"Key {key!r} has no segments")
    for segment in segments:
        if segment in (".", ".."):
            raise KeyPathError(f"Key {key!r} contains relative segment {segment!r}")
        if ESCAPE_COLON in segment:
            # unescaping would turn it into ':'
            raise KeyPathError(f"Key {key!r} contains reserved string {ESCAPE_COLON}")
    return segments


def normalize_key(key: str) -> str:
    return "/" + "/".join(key_segments(key))


def to_path(base_dir: PathLike, key: str) -> Path:
    """Return the mirror directory of ``key`` below ``base_dir``."""
    return Path(base_dir).joinpath(*(escape_segment(s) for s in key_segments(key)))


def to_key(path: PathLike, base_dir: PathLike) -> str:
    """Return the etcd key mirrored by directory ``path`` below ``base_dir``."""
    try:
        rel = Path(path).relative_to(Path(base_dir))
    except ValueError as e:
        raise KeyPathError(f"Path {path} is not below {base_dir}") from e
    if not rel.parts:
        raise KeyPathError(f"Path {path} is the mirror root")
    return "/" + "/".join(unescape_segment(p) for p in rel.parts)


def content_path(base_dir: PathLike, key: str) -> Path:
    return to_path(base_dir, key) / CONTENT_FILE


def key_for_content(content_file: PathLike, base_dir: PathLike) -> str:
    content_file = Path(content_file)
    if content_file.name != CONTENT_FILE:
        raise KeyPathError(f"{content_file} is not a {CONTENT_FILE} file")
    return to_key(content_file.parent, base_dir)
