"""
Tests for the tree sync engine -- upload, download, copy and env export.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from paramfs.engine import TreeSyncEngine, iter_files, to_key, to_relative
from paramfs.errors import LocalFileError, ParameterNotFoundError, StoreError
from paramfs.models import ParameterType


def _engine(store, chunk_size: int = 16) -> TreeSyncEngine:
    return TreeSyncEngine(store, chunk_size=chunk_size)


class TestPathMapping:
    """Tests for local path <-> key mapping helpers."""

    def test_to_key_strips_trailing_slash(self):
        assert to_key("/p/", Path("a/b/c.txt")) == "/p/a/b/c.txt"
        assert to_key("/p", Path("c.txt")) == "/p/c.txt"

    def test_to_relative(self):
        assert to_relative("/p", "/p/a/b/c.txt") == "a/b/c.txt"
        assert to_relative("/p/", "/p/a") == "a"
        assert to_relative("/p", "/other/a") == "/other/a"

    def test_iter_files_skips_symlinks(self, tree: Path, tmp_path: Path):
        outside = tmp_path / "outside.txt"
        outside.write_text("secret")
        os.symlink(outside, tree / "link.txt")
        os.symlink(tree / "a", tree / "linked-dir")

        names = [p.relative_to(tree).as_posix() for p in iter_files(tree)]

        assert names == ["big.bin", "empty", "a/b/c.txt"]


class TestUpload:
    """Tests for uploading directory trees."""

    def test_upload_keys(self, store, tree: Path):
        keys = _engine(store).upload(tree, "/p/")

        assert sorted(keys) == sorted([
            "/p/a/b/c.txt",
            "/p/big.bin.part0",
            "/p/big.bin.part1",
            "/p/big.bin.part2",
            "/p/empty",
        ])

    def test_upload_uses_configured_type(self, store, tree: Path):
        TreeSyncEngine(store, chunk_size=16, parameter_type=ParameterType.STRING).upload(tree, "/p")
        assert {p.type for p in store.params.values()} == {ParameterType.STRING}

    def test_upload_defaults_to_secure_string(self, store, tree: Path):
        _engine(store).upload(tree, "/p")
        assert store.params["/p/a/b/c.txt"].type == ParameterType.SECURE_STRING

    def test_upload_overwrites(self, store, tree: Path):
        store.seed("/p/a/b/c.txt", "stale")
        _engine(store).upload(tree, "/p")
        assert store.params["/p/a/b/c.txt"].value == "hello world"

    def test_chunks_within_bound(self, store, tree: Path):
        _engine(store).upload(tree, "/p")
        assert all(len(p.value.encode()) <= 16 for p in store.params.values())

    def test_upload_missing_dir(self, store, tmp_path: Path):
        with pytest.raises(LocalFileError):
            _engine(store).upload(tmp_path / "nope", "/p")

    def test_failure_keeps_earlier_writes(self, store, tree: Path):
        original_put = store.put
        calls = []

        def flaky_put(name, value, **kwargs):
            calls.append(name)
            if len(calls) == 2:
                raise StoreError("throttled")
            original_put(name, value, **kwargs)

        store.put = flaky_put
        with pytest.raises(StoreError):
            _engine(store).upload(tree, "/p")
        assert len(store.params) == 1


class TestDownload:
    """Tests for downloading prefixes and single names."""

    def test_tree_round_trip(self, store, tree: Path, tmp_path: Path):
        store.page_size = 1
        engine = _engine(store)
        engine.upload(tree, "/p")

        out = tmp_path / "out"
        written = engine.download_prefix("/p", out)

        assert len(written) == 3
        assert (out / "a" / "b" / "c.txt").read_bytes() == b"hello world"
        assert (out / "big.bin").read_bytes() == bytes(range(40))
        assert (out / "empty").read_bytes() == b""
        assert not list(out.glob("*.part*"))

    def test_download_follows_every_page(self, store, tmp_path: Path):
        store.page_size = 2
        for i in range(5):
            store.seed(f"/p/f{i}", str(i))

        _engine(store).download_prefix("/p", tmp_path)

        assert sorted(p.name for p in tmp_path.iterdir()) == [f"f{i}" for i in range(5)]
        assert [call[2] for call in store.list_calls] == [None, "2", "4"]

    def test_download_reorders_chunks(self, store, tmp_path: Path):
        store.seed("/p/doc.part2", "c")
        store.seed("/p/doc.part10", "z")
        store.seed("/p/doc.part0", "a")
        store.seed("/p/doc.part1", "b")

        _engine(store).download_prefix("/p", tmp_path)

        assert (tmp_path / "doc").read_text() == "abcz"

    def test_multibyte_char_across_chunks_is_replaced(self, store, tmp_path: Path):
        src = tmp_path / "src"
        src.mkdir()
        (src / "split.txt").write_bytes("a\u00e9".encode("utf-8"))
        (src / "aligned.txt").write_bytes("\u00e9ab".encode("utf-8"))
        engine = _engine(store, chunk_size=2)
        engine.upload(src, "/p")

        out = tmp_path / "out"
        engine.download_prefix("/p", out)

        assert (out / "split.txt").read_text(encoding="utf-8") == "a\ufffd\ufffd"
        assert (out / "aligned.txt").read_text(encoding="utf-8") == "\u00e9ab"

    def test_malformed_part_is_own_file(self, store, tmp_path: Path):
        store.seed("/p/notes.partY", "v")
        _engine(store).download_prefix("/p", tmp_path)
        assert (tmp_path / "notes.partY").read_text() == "v"

    def test_refuses_parent_escape(self, store, tmp_path: Path):
        store.seed("/p/../evil", "x")
        with pytest.raises(LocalFileError):
            _engine(store).download_prefix("/p", tmp_path / "out")

    def test_download_name(self, store, tmp_path: Path):
        store.seed("/p/a/b/c.txt", "hello")
        path = _engine(store).download_name("/p/a/b/c.txt", tmp_path)
        assert path == tmp_path / "c.txt"
        assert path.read_text() == "hello"

    def test_download_name_does_not_reassemble(self, store, tmp_path: Path):
        store.seed("/p/big.part0", "abc")
        path = _engine(store).download_name("/p/big.part0", tmp_path)
        assert path.name == "big.part0"

    def test_download_name_missing(self, store, tmp_path: Path):
        with pytest.raises(ParameterNotFoundError):
            _engine(store).download_name("/p/missing", tmp_path)


class TestCopy:
    """Tests for verbatim prefix copies."""

    def test_copy_preserves_value_and_type(self, store):
        store.page_size = 1
        store.seed("/p/a", "1", ParameterType.STRING)
        store.seed("/p/b/c", "2", ParameterType.SECURE_STRING)
        store.seed("/p/big.part0", "x", ParameterType.SECURE_STRING)
        store.seed("/other/d", "3")

        written = _engine(store).copy("/p", "/q")

        assert sorted(written) == ["/q/a", "/q/b/c", "/q/big.part0"]
        for name in written:
            source = store.params["/p" + name[len("/q"):]]
            copied = store.params[name]
            assert copied.value == source.value
            assert copied.type == source.type
        assert "/q/d" not in store.params

    def test_copy_overwrites(self, store):
        store.seed("/p/a", "new")
        store.seed("/q/a", "old")
        _engine(store).copy("/p", "/q")
        assert store.params["/q/a"].value == "new"


class TestExportEnv:
    """Tests for env file export."""

    def test_export(self, store, tmp_path: Path):
        store.seed("/base/db_url", "postgres://x")
        store.seed("/base/api_key", "abc")
        out = tmp_path / ".env"

        env = _engine(store).export_env("/base", ["db_url", "api_key"], out)

        assert env == {"DB_URL": "postgres://x", "API_KEY": "abc"}
        assert out.read_text() == 'DB_URL="postgres://x"\nAPI_KEY="abc"'

    def test_export_no_escaping(self, store, tmp_path: Path):
        store.seed("/base/name", 'say "hi"')
        out = tmp_path / ".env"
        _engine(store).export_env("/base", ["name"], out)
        assert out.read_text() == 'NAME="say "hi""'

    def test_export_skips_missing(self, store, tmp_path: Path):
        store.seed("/base/a", "1")
        out = tmp_path / ".env"
        env = _engine(store).export_env("/base", ["a", "missing"], out)
        assert env == {"A": "1"}

    def test_export_overwrites_file(self, store, tmp_path: Path):
        store.seed("/base/a", "1")
        out = tmp_path / ".env"
        out.write_text("OLD=1\nOLDER=2\n")
        _engine(store).export_env("/base", ["a"], out)
        assert out.read_text() == 'A="1"'


def test_rejects_bad_chunk_size(store):
    with pytest.raises(ValueError):
        TreeSyncEngine(store, chunk_size=0)
