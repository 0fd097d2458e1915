#!/usr/bin/env python3
"""
Basic usage example for etcd-mirror.

This example demonstrates:
1. Probing an endpoint for its etcd version and Kubernetes distro
2. Backing up the keyspace into a zip archive
3. Restoring the archive into another (empty) etcd v2 endpoint

Set EtcdSettings__HostName / RESTORE_ENDPOINT to point at your servers.
For https endpoints also set EtcdSettings__ClientCertPath and
EtcdSettings__ClientKeyPath.
"""

import os
import tempfile

from etcd_mirror import (
    BackupEngine,
    DistroClassifier,
    EtcdMirrorError,
    RestoreEngine,
    TLSSettings,
    setup_logging,
)

setup_logging(level=os.getenv("LOG_LEVEL", "INFO"))


def main():
    source = os.getenv("EtcdSettings__HostName", "http://localhost:2379")
    target = os.getenv("RESTORE_ENDPOINT", "http://localhost:4001")
    tls = TLSSettings.from_env()

    print(f"🔗 Source endpoint: {source}")
    try:
        info = DistroClassifier(tls=tls).explore(source)
        print(f"  etcd {info.version} ({'secure' if info.secure else 'insecure'}), distro: {info.distro.value}")

        work_dir = tempfile.mkdtemp(prefix="etcd-mirror-")
        engine = BackupEngine(work_dir, tls=tls)
        based = engine.backup(source)
        print(f"📦 Backed up {engine.stored} keys into {os.path.join(work_dir, based)}.zip")
        if engine.skipped:
            print(f"  ⚠️  {len(engine.skipped)} keys skipped")

        print(f"♻️  Restoring into {target}...")
        restorer = RestoreEngine(tls=tls)
        restored = restorer.restore(based, work_dir, target)
        print(f"✅ Restored {restored} keys")
        for skipped in restorer.skipped:
            print(f"  skipped {skipped.key}: {skipped.reason}")
    except EtcdMirrorError as e:
        print(f"❌ Error: {e}")
        raise


if __name__ == "__main__":
    main()
