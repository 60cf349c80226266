"""Tests for LocalWalker."""

import os
import tempfile
from pathlib import Path

import pytest

from mirrorbox.exceptions import SyncCancelledError, WalkError
from mirrorbox.sync.cancel import CancelToken
from mirrorbox.sync.scanner import LocalWalker, collect_entries
from mirrorbox.utils import TEMP_FILE_PREFIX


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


class TestLocalWalker:
    """Tests for walking a local directory."""

    def test_empty_directory(self, temp_dir):
        """An empty root produces no entries."""
        assert collect_entries(LocalWalker(temp_dir)) == []

    def test_entries_relative_and_sorted(self, temp_dir):
        """Paths are slash-separated, relative and parents come first."""
        (temp_dir / "b.txt").write_bytes(b"12345")
        (temp_dir / "sub").mkdir()
        (temp_dir / "sub" / "c.txt").write_bytes(b"abc")
        (temp_dir / "a.txt").write_bytes(b"")

        entries = collect_entries(LocalWalker(temp_dir))

        assert [e.path for e in entries] == ["a.txt", "b.txt", "sub", "sub/c.txt"]
        by_path = {e.path: e for e in entries}
        assert by_path["b.txt"].size == 5
        assert not by_path["b.txt"].is_dir
        assert by_path["sub"].is_dir
        assert by_path["sub"].size == 0
        assert by_path["sub/c.txt"].size == 3

    def test_mtime_is_whole_seconds(self, temp_dir):
        """Modification times are truncated to seconds."""
        path = temp_dir / "a.txt"
        path.write_bytes(b"x")
        os.utime(path, (1700000000.75, 1700000000.75))

        (entry,) = collect_entries(LocalWalker(temp_dir))

        assert entry.mtime == 1700000000

    def test_skips_temporary_files(self, temp_dir):
        """Leftovers from interrupted atomic writes are not reported."""
        (temp_dir / f"{TEMP_FILE_PREFIX}abc").write_bytes(b"partial")
        (temp_dir / "real.txt").write_bytes(b"data")

        entries = collect_entries(LocalWalker(temp_dir))

        assert [e.path for e in entries] == ["real.txt"]

    def test_missing_root_raises_walk_error(self, temp_dir):
        """A root that does not exist is a walk error."""
        with pytest.raises(WalkError):
            collect_entries(LocalWalker(temp_dir / "missing"))

    def test_file_root_raises_walk_error(self, temp_dir):
        """A root that is a file is a walk error."""
        path = temp_dir / "file.txt"
        path.write_bytes(b"x")
        with pytest.raises(WalkError):
            collect_entries(LocalWalker(path))

    def test_visitor_error_stops_walk(self, temp_dir):
        """An exception raised by the visitor propagates."""
        (temp_dir / "a.txt").write_bytes(b"x")
        (temp_dir / "b.txt").write_bytes(b"x")
        seen = []

        def visit(entry):
            seen.append(entry.path)
            raise RuntimeError("stop")

        with pytest.raises(RuntimeError):
            LocalWalker(temp_dir).walk(visit)
        assert seen == ["a.txt"]

    def test_cancelled_token_stops_walk(self, temp_dir):
        """A cancelled token stops the walk before reading."""
        (temp_dir / "a.txt").write_bytes(b"x")
        token = CancelToken()
        token.cancel()

        with pytest.raises(SyncCancelledError):
            collect_entries(LocalWalker(temp_dir, cancel=token))

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_symlinked_directory_skipped(self, temp_dir):
        """A symlink to a directory is neither reported nor descended into."""
        target = temp_dir / "target"
        target.mkdir()
        (target / "inner.txt").write_bytes(b"x")
        root = temp_dir / "root"
        root.mkdir()
        (root / "link").symlink_to(target, target_is_directory=True)
        (root / "real.txt").write_bytes(b"y")

        entries = collect_entries(LocalWalker(root))

        assert [e.path for e in entries] == ["real.txt"]

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_dangling_symlink_skipped(self, temp_dir):
        """A symlink whose target is missing does not fail the walk."""
        (temp_dir / "broken").symlink_to(temp_dir / "does-not-exist")
        (temp_dir / "real.txt").write_bytes(b"y")

        entries = collect_entries(LocalWalker(temp_dir))

        assert [e.path for e in entries] == ["real.txt"]


def test_collect_entries_none_is_empty():
    """A missing walker means an empty tree."""
    assert collect_entries(None) == []
