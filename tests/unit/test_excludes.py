"""
Tests for pullcsv.sync.excludes module.
"""

from pathlib import Path

from pullcsv.sync.excludes import ExcludeFile, merge, serialized_size, truncate


class TestMerge:
    """Tests for merging snapshots with listings."""

    def test_sorted_union(self) -> None:
        assert merge(["b", "a"], ["c", "a"]) == ["a", "b", "c"]

    def test_commutative(self) -> None:
        assert merge(["x", "y"], ["y", "z"]) == merge(["y", "z"], ["x", "y"])

    def test_previous_duplicates_removed(self) -> None:
        assert merge(["a", "a", "b"], []) == ["a", "b"]

    def test_empty(self) -> None:
        assert merge([], []) == []


class TestTruncate:
    """Tests for bounding the exclude list."""

    def test_small_list_untouched(self) -> None:
        entries = ["a", "b", "c"]
        assert truncate(entries, max_bytes=100, tail_lines=1) == entries

    def test_exactly_at_bound_untouched(self) -> None:
        entries = ["ab", "cd"]
        assert serialized_size(entries) == 6
        assert truncate(entries, max_bytes=6, tail_lines=1) == entries

    def test_keeps_tail(self) -> None:
        entries = [f"file{i:03d}" for i in range(100)]
        result = truncate(entries, max_bytes=50, tail_lines=10)
        assert result == entries[-10:]

    def test_idempotent(self) -> None:
        entries = [f"file{i:03d}" for i in range(100)]
        once = truncate(entries, max_bytes=200, tail_lines=10)
        assert truncate(once, max_bytes=200, tail_lines=10) == once

    def test_zero_tail(self) -> None:
        assert truncate(["a", "b"], max_bytes=0, tail_lines=0) == []

    def test_multibyte_names_counted_in_bytes(self) -> None:
        assert serialized_size(["ä"]) == 3

    def test_undecodable_byte_counted_once(self) -> None:
        assert serialized_size(["bad\udcff"]) == 5


class TestExcludeFile:
    """Tests for the persisted exclude list."""

    def test_read_missing_is_empty(self, temp_dir: Path) -> None:
        assert ExcludeFile(temp_dir / "missing").read() == []

    def test_write_and_read(self, temp_dir: Path) -> None:
        exclude = ExcludeFile(temp_dir / "name-excludeFile")
        exclude.write(["a.csv", "b.csv"])

        assert (temp_dir / "name-excludeFile").read_text(encoding="utf-8") == "a.csv\nb.csv\n"
        assert exclude.read() == ["a.csv", "b.csv"]
        assert not (temp_dir / "tmp_name-excludeFile").exists()

    def test_reset(self, temp_dir: Path) -> None:
        exclude = ExcludeFile(temp_dir / "sub" / "x")
        exclude.write(["a"])
        exclude.reset()
        assert exclude.path.read_bytes() == b""
        assert exclude.read() == []

    def test_update_merges_and_sorts(self, temp_dir: Path) -> None:
        exclude = ExcludeFile(temp_dir / "x")
        exclude.write(["old.csv"])

        result = exclude.update(["new.csv", "another.csv"])

        assert result == ["another.csv", "new.csv", "old.csv"]
        assert exclude.read() == result

    def test_update_keeps_names_gone_from_destination(self, temp_dir: Path) -> None:
        exclude = ExcludeFile(temp_dir / "x")
        exclude.update(["f1", "f2"])
        assert exclude.update(["f3"]) == ["f1", "f2", "f3"]

    def test_update_truncates(self, temp_dir: Path) -> None:
        exclude = ExcludeFile(temp_dir / "x", max_bytes=20, tail_lines=2)
        result = exclude.update([f"file{i}" for i in range(5)])
        assert result == ["file3", "file4"]
        assert exclude.read() == ["file3", "file4"]

    def test_custom_policy(self, temp_dir: Path) -> None:
        def keep_first(entries: list[str], max_bytes: int, tail_lines: int) -> list[str]:
            return entries[:1]

        exclude = ExcludeFile(temp_dir / "x", policy=keep_first)
        assert exclude.update(["b", "a"]) == ["a"]

    def test_undecodable_name_round_trips(self, temp_dir: Path) -> None:
        exclude = ExcludeFile(temp_dir / "x")
        name = b"bad\xff.csv".decode("utf-8", "surrogateescape")

        assert exclude.update([name, "good.csv"]) == [name, "good.csv"]
        assert exclude.path.read_bytes() == b"bad\xff.csv\ngood.csv\n"
        assert exclude.read() == [name, "good.csv"]

    def test_undecodable_line_keeps_other_entries(self, temp_dir: Path) -> None:
        exclude = ExcludeFile(temp_dir / "x")
        exclude.path.write_bytes(b"a\n\xff\nb\n")

        assert exclude.read() == ["a", "\udcff", "b"]
        assert exclude.update(["c"]) == ["a", "b", "c", "\udcff"]
        assert exclude.path.read_bytes() == b"a\nb\nc\n\xff\n"
