"""Tests for the command line interface."""

import logging
from unittest.mock import patch

import pytest

from etcd_mirror import cli
from etcd_mirror.core.errors import EndpointProbeError
from etcd_mirror.core.types import Distro, EndpointInfo, KeyStats


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    for name in ("", "etcd_mirror", "httpx", "httpcore", "urllib3", "etcd"):
        logger = logging.getLogger(name)
        logger.handlers = []
        logger.filters.clear()
        logger.propagate = True


def test_requires_command():
    with pytest.raises(SystemExit):
        cli.main([])


@patch("etcd_mirror.cli.DistroClassifier")
def test_explore(classifier_cls, capsys):
    classifier_cls.return_value.explore.return_value = EndpointInfo(
        "http://localhost:2379", "3.1.0", False, Distro.OPENSHIFT
    )
    assert cli.main(["explore", "http://localhost:2379"]) == 0
    out = capsys.readouterr().out
    assert "3.1.0" in out
    assert "openshift" in out


@patch("etcd_mirror.cli.BackupEngine")
def test_backup_prints_basename(engine_cls, capsys, tmp_path):
    engine_cls.return_value.backup.return_value = "1498055655"
    engine_cls.return_value.skipped = []
    assert cli.main(["backup", "http://localhost:2379", "--workdir", str(tmp_path)]) == 0
    assert capsys.readouterr().out.strip() == "1498055655"
    engine_cls.return_value.backup.assert_called_once_with("http://localhost:2379", None)


@patch("etcd_mirror.cli.RestoreEngine")
def test_restore_prints_count(engine_cls, capsys, tmp_path):
    engine_cls.return_value.restore.return_value = 2
    engine_cls.return_value.skipped = []
    argv = ["restore", "1498055655", "http://localhost:2379", "--workdir", str(tmp_path)]
    assert cli.main(argv) == 0
    assert capsys.readouterr().out.strip() == "2"
    engine_cls.return_value.restore.assert_called_once_with(
        "1498055655", str(tmp_path), "http://localhost:2379"
    )


@patch("etcd_mirror.cli.DistroClassifier")
def test_stats(classifier_cls, capsys):
    classifier_cls.return_value.count_keys.return_value = KeyStats(2, 8)
    assert cli.main(["stats", "http://localhost:2379"]) == 0
    out = capsys.readouterr().out
    assert "keys: 2" in out
    assert "size: 8" in out


@patch("etcd_mirror.cli.DistroClassifier")
def test_failure_exit_code(classifier_cls, capsys):
    classifier_cls.return_value.explore.side_effect = EndpointProbeError("connection refused")
    assert cli.main(["explore", "http://localhost:2379"]) == 1
    assert "connection refused" in capsys.readouterr().err
