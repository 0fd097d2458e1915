"""Tests for the backup engine."""

import zipfile

import pytest

from etcd_mirror.core.backup import BackupEngine, store
from etcd_mirror.core.errors import (
    ArchiveError,
    DistroUndeterminedError,
    KeyPathError,
    KeyspaceError,
    UnsupportedVersionError,
)
from etcd_mirror.core.settings import TLSSettings

from .conftest import MemoryKeyspace, StaticProbe, factory_for


class TestStore:
    @pytest.mark.parametrize(
        "key, value",
        [
            ("/test", "some"),
            ("/test/first-level", "another"),
            ("/test/this:also", "escaped"),
        ],
    )
    def test_store_writes_content(self, tmp_path, key, value):
        content = store(tmp_path, key, value)
        assert content.name == "content"
        assert content.read_text() == value

    def test_escaped_placement(self, tmp_path):
        content = store(tmp_path, "/test/this:also", "escaped")
        assert content == tmp_path / "test" / "thisESC_COLONalso" / "content"

    @pytest.mark.parametrize("key", ["", "non-valid-key", "/"])
    def test_invalid_key_writes_nothing(self, tmp_path, key):
        with pytest.raises(KeyPathError):
            store(tmp_path, key, "root")
        assert list(tmp_path.iterdir()) == []


class TestBackupEngine:
    def test_backup_creates_archive(self, tmp_path, keyspace):
        engine = BackupEngine(tmp_path, StaticProbe(), factory_for(keyspace), TLSSettings())
        based = engine.backup("http://localhost:2379", "1498055655")

        assert based == "1498055655"
        archive_file = tmp_path / "1498055655.zip"
        assert archive_file.is_file()
        assert not (tmp_path / "1498055655").exists()
        with zipfile.ZipFile(archive_file) as zf:
            assert zf.read("1498055655/foo/content") == b"some"
            assert zf.read("1498055655/that/here/content") == b"moar"
        assert engine.stored == 2
        assert engine.skipped == []
        assert keyspace.closed is True

    def test_default_basename_is_timestamp(self, tmp_path, keyspace):
        engine = BackupEngine(tmp_path, StaticProbe(), factory_for(keyspace), TLSSettings())
        based = engine.backup("http://localhost:2379")
        assert based.isdigit()
        assert (tmp_path / f"{based}.zip").is_file()

    def test_escaped_keys_in_archive(self, tmp_path):
        keyspace = MemoryKeyspace({"/registry/pods/default/web:1": "pod"})
        engine = BackupEngine(tmp_path, StaticProbe(), factory_for(keyspace), TLSSettings())
        engine.backup("http://localhost:2379", "b")
        with zipfile.ZipFile(tmp_path / "b.zip") as zf:
            assert zf.read("b/registry/pods/default/webESC_COLON1/content") == b"pod"

    def test_failing_key_is_skipped(self, tmp_path):
        keyspace = MemoryKeyspace(
            {"/ok": "1", "/bad/ESC_COLON": "x", "/broken/a": "2", "/fine/b": "3"},
            failing=("/broken",),
        )
        engine = BackupEngine(tmp_path, StaticProbe(), factory_for(keyspace), TLSSettings())
        engine.backup("http://localhost:2379", "b")

        assert engine.stored == 2
        assert sorted(s.key for s in engine.skipped) == ["/bad/ESC_COLON", "/broken"]
        with zipfile.ZipFile(tmp_path / "b.zip") as zf:
            names = zf.namelist()
        assert "b/ok/content" in names
        assert "b/fine/b/content" in names

    def test_unreadable_root_is_fatal(self, tmp_path):
        keyspace = MemoryKeyspace({"/a": "1"}, failing=("/",))
        engine = BackupEngine(tmp_path, StaticProbe(), factory_for(keyspace), TLSSettings())
        with pytest.raises(KeyspaceError):
            engine.backup("http://localhost:2379", "b")
        assert not (tmp_path / "b.zip").exists()

    def test_protocol_3_is_not_backed_up(self, tmp_path, keyspace):
        factory = factory_for(keyspace)
        engine = BackupEngine(tmp_path, StaticProbe("3.1.0"), factory, TLSSettings())
        with pytest.raises(UnsupportedVersionError):
            engine.backup("http://localhost:2379")
        assert factory.opened == []

    def test_unknown_protocol(self, tmp_path, keyspace):
        engine = BackupEngine(tmp_path, StaticProbe("9.9"), factory_for(keyspace), TLSSettings())
        with pytest.raises(DistroUndeterminedError):
            engine.backup("http://localhost:2379")

    def test_existing_directory_is_left_alone(self, tmp_path, keyspace):
        (tmp_path / "data").mkdir()
        (tmp_path / "data" / "thesis.txt").write_text("keep me")

        engine = BackupEngine(tmp_path, StaticProbe(), factory_for(keyspace), TLSSettings())
        with pytest.raises(ArchiveError):
            engine.backup("http://localhost:2379", "data")

        assert (tmp_path / "data" / "thesis.txt").read_text() == "keep me"
        assert not (tmp_path / "data.zip").exists()

    def test_existing_archive_is_not_replaced(self, tmp_path, keyspace):
        (tmp_path / "b.zip").write_bytes(b"earlier backup")

        engine = BackupEngine(tmp_path, StaticProbe(), factory_for(keyspace), TLSSettings())
        with pytest.raises(ArchiveError):
            engine.backup("http://localhost:2379", "b")

        assert (tmp_path / "b.zip").read_bytes() == b"earlier backup"
        assert not (tmp_path / "b").exists()
