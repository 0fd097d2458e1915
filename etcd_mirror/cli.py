"""Command line interface.

Usage: etcd-mirror [--log-level LEVEL] COMMAND [OPTIONS]

COMMANDS:
  explore ENDPOINT                       etcd version, transport and Kubernetes distro
  backup ENDPOINT [--workdir DIR]        mirror the keyspace into DIR/<name>.zip
  restore ARCHIVE ENDPOINT [--workdir]   replay DIR/ARCHIVE.zip into ENDPOINT
  stats ENDPOINT [--prefix PREFIX]       number of keys and total value size

Exit codes:
  0 - Success
  1 - Operation failed
"""

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .core.backup import BackupEngine
from .core.discovery import DistroClassifier
from .core.errors import EtcdMirrorError
from .core.logging import setup_logging
from .core.restore import RestoreEngine
from .core.settings import TLSSettings, default_endpoint, default_work_dir

logger = logging.getLogger("etcd_mirror.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="etcd-mirror",
        description="Back up, restore and explore etcd keyspaces",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Log level of the JSON log written to stderr (default: WARNING)",
    )
    parser.add_argument("--cert", help="Client certificate for https endpoints")
    parser.add_argument("--key", help="Client key for https endpoints")

    commands = parser.add_subparsers(dest="command", required=True)

    explore = commands.add_parser("explore", help="Probe an endpoint")
    explore.add_argument("endpoint", nargs="?", default=default_endpoint())

    backup = commands.add_parser("backup", help="Back up an endpoint")
    backup.add_argument("endpoint", nargs="?", default=default_endpoint())
    backup.add_argument("--workdir", default=default_work_dir())
    backup.add_argument("--name", help="Archive basename (default: Unix timestamp)")

    restore = commands.add_parser("restore", help="Restore an archive into an endpoint")
    restore.add_argument("archive", help="Archive basename, without .zip")
    restore.add_argument("endpoint", nargs="?", default=default_endpoint())
    restore.add_argument("--workdir", default=default_work_dir())

    stats = commands.add_parser("stats", help="Count keys of an endpoint")
    stats.add_argument("endpoint", nargs="?", default=default_endpoint())
    stats.add_argument("--prefix", default="/")

    return parser


def run(args: argparse.Namespace) -> int:
    tls = TLSSettings(args.cert, args.key)

    if args.command == "explore":
        info = DistroClassifier(tls=tls).explore(args.endpoint)
        print(f"endpoint: {info.endpoint}")
        print(f"version:  {info.version}")
        print(f"secure:   {str(info.secure).lower()}")
        print(f"distro:   {info.distro.value}")
    elif args.command == "backup":
        engine = BackupEngine(args.workdir, tls=tls)
        based = engine.backup(args.endpoint, args.name)
        print(based)
        if engine.skipped:
            print(f"{len(engine.skipped)} keys skipped", file=sys.stderr)
    elif args.command == "restore":
        engine = RestoreEngine(tls=tls)
        restored = engine.restore(args.archive, args.workdir, args.endpoint)
        print(restored)
        if engine.skipped:
            print(f"{len(engine.skipped)} keys skipped", file=sys.stderr)
    elif args.command == "stats":
        stats = DistroClassifier(tls=tls).count_keys(args.endpoint, args.prefix)
        print(f"keys: {stats.keys}")
        print(f"size: {stats.size_bytes}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level, stream=sys.stderr)
    try:
        return run(args)
    except EtcdMirrorError as e:
        logger.error(
            "command_failed",
            extra={"event": {"category": ["cli"], "action": args.command}},
            exc_info=True,
        )
        print(f"etcd-mirror {args.command}: {e}", file=sys.stderr)
        return 1
