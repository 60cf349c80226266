"""Tests for the Differ class."""

from mirrorbox.sync.comparator import Differ
from mirrorbox.sync.models import FileEntry, SyncAction


def _file(path: str, size: int = 100, mtime: int = 1000) -> FileEntry:
    """Create a file FileEntry for testing."""
    return FileEntry(path=path, size=size, mtime=mtime)


def _dir(path: str, mtime: int = 1000) -> FileEntry:
    """Create a directory FileEntry for testing."""
    return FileEntry(path=path, size=0, mtime=mtime, is_dir=True)


class TestDiffBasics:
    """Tests for create and no-op decisions."""

    def test_identical_trees_produce_empty_diff(self):
        """Diffing a tree against itself yields nothing."""
        entries = [_dir("docs"), _file("docs/a.txt"), _file("b.txt", size=5)]
        result = Differ().diff(entries, entries)

        assert result.is_empty
        assert len(result) == 0

    def test_identical_trees_with_deletes_enabled(self):
        """Reflexivity also holds when extra files are deleted."""
        entries = [_file("a.txt"), _file("b.txt")]
        result = Differ(delete_extra_files=True).diff(entries, entries)

        assert result.is_empty

    def test_empty_destination_creates_everything(self):
        """Every source entry becomes a CREATE against an empty destination."""
        source = [_file("b.txt"), _dir("sub"), _file("sub/c.txt"), _file("a.txt")]
        result = Differ().diff(source, [])

        assert [d.action for d in result] == [SyncAction.CREATE] * 4
        assert [d.path for d in result] == ["a.txt", "b.txt", "sub", "sub/c.txt"]
        for file_diff in result:
            assert file_diff.source is not None
            assert file_diff.destination is None

    def test_single_new_file(self):
        """A 10-byte new file yields one CREATE with its size."""
        result = Differ().diff([_file("a.txt", size=10)], [])

        assert len(result) == 1
        only = result.diffs[0]
        assert only.path == "a.txt"
        assert only.action == SyncAction.CREATE
        assert result.total_bytes() == 10


class TestNeedsUpdate:
    """Tests for the size/mtime staleness rule."""

    def test_size_difference_updates(self):
        """A size change always triggers an update."""
        differ = Differ()
        assert differ.needs_update(_file("a", size=10), _file("a", size=20))

    def test_size_difference_updates_even_if_destination_newer(self):
        """Size wins over an older source mtime."""
        differ = Differ()
        src = _file("a", size=10, mtime=100)
        dst = _file("a", size=20, mtime=500)
        assert differ.needs_update(src, dst)

    def test_newer_source_updates(self):
        """Same size, newer source mtime triggers an update."""
        differ = Differ()
        assert differ.needs_update(_file("a", mtime=2000), _file("a", mtime=1000))

    def test_older_source_is_in_sync(self):
        """Same size, older source mtime is left alone."""
        differ = Differ()
        assert not differ.needs_update(_file("a", mtime=1000), _file("a", mtime=2000))

    def test_equal_mtime_is_in_sync(self):
        """Same size and mtime is in sync."""
        differ = Differ()
        assert not differ.needs_update(_file("a"), _file("a"))

    def test_directories_never_update(self):
        """Directory metadata changes do not produce actions."""
        result = Differ().diff([_dir("sub", mtime=9999)], [_dir("sub", mtime=1)])
        assert result.is_empty

    def test_update_carries_both_sides(self):
        """An UPDATE holds the source and destination entries."""
        src = _file("a.txt", size=12, mtime=200)
        dst = _file("a.txt", size=10, mtime=100)
        result = Differ().diff([src], [dst])

        assert len(result) == 1
        update = result.diffs[0]
        assert update.action == SyncAction.UPDATE
        assert update.source == src
        assert update.destination == dst


class TestDeletes:
    """Tests for destination-only entries."""

    def test_no_deletes_by_default(self):
        """Destination-only entries are ignored unless deletes are enabled."""
        result = Differ().diff([_file("a.txt")], [_file("a.txt"), _file("old.txt")])
        assert result.is_empty

    def test_destination_only_entry_is_deleted(self):
        """With deletes enabled a destination-only file becomes a DELETE."""
        dst_entry = _file("old.txt")
        result = Differ(delete_extra_files=True).diff([], [dst_entry])

        assert len(result) == 1
        delete = result.diffs[0]
        assert delete.action == SyncAction.DELETE
        assert delete.path == "old.txt"
        assert delete.source is None
        assert delete.destination == dst_entry

    def test_deletes_follow_creates_and_updates(self):
        """Creates and updates come first, deletes last, each sorted by path."""
        source = [_file("z.txt"), _file("m.txt", size=5)]
        destination = [_file("m.txt"), _file("b-old.txt"), _file("a-old.txt")]
        result = Differ(delete_extra_files=True).diff(source, destination)

        assert [(d.path, d.action) for d in result] == [
            ("m.txt", SyncAction.UPDATE),
            ("z.txt", SyncAction.CREATE),
            ("a-old.txt", SyncAction.DELETE),
            ("b-old.txt", SyncAction.DELETE),
        ]

    def test_counts(self):
        """counts() tallies each action."""
        source = [_file("new.txt"), _file("changed.txt", size=1)]
        destination = [_file("changed.txt"), _file("gone.txt")]
        result = Differ(delete_extra_files=True).diff(source, destination)

        assert result.counts() == {"create": 1, "update": 1, "delete": 1}
