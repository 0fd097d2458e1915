#!/usr/bin/env python3
"""
Example of plugging a custom keyspace client into the engines.

Anything implementing KeyspaceClient can be used as the backup source or the
restore target. Here a dry-run client records what a restore would write
without touching etcd.
"""

import os
import sys
from typing import Dict, List, Optional

from etcd_mirror import KeyspaceClient, RestoreEngine, setup_logging
from etcd_mirror.core.types import KeyNode

setup_logging(level="INFO")


class DryRunClient(KeyspaceClient):
    """Keyspace client that only collects writes."""

    protocol = "2"

    def __init__(self, endpoint: str, secure: bool = False, tls=None):
        super().__init__(endpoint, secure, tls)
        self.writes: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self.writes.get(key)

    def exists(self, key: str) -> bool:
        return key in self.writes

    def list(self, key: str) -> List[KeyNode]:
        return []

    def create_if_absent(self, key: str, value: str) -> bool:
        if key in self.writes:
            return False
        self.writes[key] = value
        return True


def main():
    if len(sys.argv) != 3:
        print(f"usage: {sys.argv[0]} WORKDIR ARCHIVE_BASENAME")
        return 1
    work_dir, based = sys.argv[1], sys.argv[2]
    endpoint = os.getenv("EtcdSettings__HostName", "http://localhost:2379")

    dry_run = DryRunClient(endpoint)
    engine = RestoreEngine(client_factory=lambda *args: dry_run)
    restored = engine.restore(based, work_dir, endpoint)

    print(f"🔍 Restore would write {restored} keys:")
    for key in sorted(dry_run.writes):
        print(f"  {key} ({len(dry_run.writes[key])} bytes)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
