"""
Tests for pullcsv.sync.archives module.
"""

import gzip
from pathlib import Path

import pytest

from pullcsv.sync.archives import ArchiveError, ArchiveProcessor, expand_archive, gunzip


def make_gzip(path: Path, content: bytes) -> Path:
    with gzip.open(path, "wb") as f:
        f.write(content)
    return path


class TestExpandArchive:
    """Tests for single-archive expansion."""

    def test_zip(self, temp_dir: Path, zip_builder) -> None:
        archive = zip_builder(temp_dir / "data.zip", {"a.csv": "1", "b.csv": "2"})
        written = expand_archive(archive, temp_dir)
        assert sorted(p.name for p in written) == ["a.csv", "b.csv"]
        assert (temp_dir / "a.csv").read_text() == "1"

    def test_gzip(self, temp_dir: Path) -> None:
        archive = make_gzip(temp_dir / "data.csv.gz", b"x;y\n")
        written = expand_archive(archive, temp_dir)
        assert written == [temp_dir / "data.csv"]
        assert (temp_dir / "data.csv").read_bytes() == b"x;y\n"

    def test_detected_by_content_not_name(self, temp_dir: Path, zip_builder) -> None:
        archive = zip_builder(temp_dir / "report_gz_export", {"r.csv": "r"})
        expand_archive(archive, temp_dir)
        assert (temp_dir / "r.csv").exists()

    def test_unknown_content(self, temp_dir: Path) -> None:
        path = temp_dir / "fake.zip"
        path.write_text("not an archive")
        with pytest.raises(ArchiveError, match="Unknown file type"):
            expand_archive(path, temp_dir)

    def test_zip_slip_rejected(self, temp_dir: Path, zip_builder) -> None:
        dest = temp_dir / "dest"
        dest.mkdir()
        archive = zip_builder(temp_dir / "evil.zip", {"../escape.csv": "x"})
        with pytest.raises(ArchiveError, match="invalid file path"):
            expand_archive(archive, dest)
        assert not (temp_dir / "escape.csv").exists()

    def test_corrupt_gzip(self, temp_dir: Path) -> None:
        path = temp_dir / "broken.gz"
        data = gzip.compress(b"some longer content " * 50)
        path.write_bytes(data[:30])
        with pytest.raises(ArchiveError):
            expand_archive(path, temp_dir)

    def test_encrypted_zip(self, temp_dir: Path, zip_builder) -> None:
        archive = zip_builder(temp_dir / "locked.zip", {"secret.csv": "1"}, encrypted=True)
        with pytest.raises(ArchiveError, match="encrypted"):
            expand_archive(archive, temp_dir)
        assert not (temp_dir / "secret.csv").exists()

    def test_unsupported_compression(self, temp_dir: Path, zip_builder) -> None:
        archive = zip_builder(temp_dir / "deflate64.zip", {"big.csv": "1"}, method=9)
        with pytest.raises(ArchiveError):
            expand_archive(archive, temp_dir)


class TestGunzipNames:
    """Tests for gzip output naming."""

    def test_gzip_suffix(self, temp_dir: Path) -> None:
        archive = make_gzip(temp_dir / "a.csv.gzip", b"1")
        assert gunzip(archive, temp_dir).name == "a.csv"

    def test_other_suffix(self, temp_dir: Path) -> None:
        archive = make_gzip(temp_dir / "a.gz.part", b"1")
        assert gunzip(archive, temp_dir).name == "a.gz.part.out"


class TestArchiveProcessor:
    """Tests for destination-wide processing."""

    def test_candidates_by_name(self, temp_dir: Path) -> None:
        (temp_dir / "a.csv").write_text("1")
        (temp_dir / "b.zip").write_text("1")
        (temp_dir / "c.gz").write_text("1")
        names = [p.name for p in ArchiveProcessor().candidates(temp_dir)]
        assert names == ["b.zip", "c.gz"]

    def test_archives_removed_after_extraction(self, temp_dir: Path, zip_builder) -> None:
        zip_builder(temp_dir / "one.zip", {"one.csv": "1"})
        make_gzip(temp_dir / "two.csv.gz", b"2")

        report = ArchiveProcessor().process(temp_dir)

        assert report.success
        assert sorted(report.extracted) == ["one.zip", "two.csv.gz"]
        assert sorted(p.name for p in temp_dir.iterdir()) == ["one.csv", "two.csv"]

    def test_failure_does_not_stop_others(self, temp_dir: Path, zip_builder) -> None:
        (temp_dir / "bad.zip").write_text("plain text")
        zip_builder(temp_dir / "good.zip", {"good.csv": "1"})

        report = ArchiveProcessor().process(temp_dir)

        assert not report.success
        assert report.skipped == ["bad.zip"]
        assert report.extracted == ["good.zip"]
        assert len(report.errors) == 1
        assert (temp_dir / "bad.zip").exists()
        assert (temp_dir / "good.csv").exists()

    def test_encrypted_zip_does_not_stop_others(self, temp_dir: Path, zip_builder) -> None:
        zip_builder(temp_dir / "a_locked.zip", {"locked.csv": "1"}, encrypted=True)
        zip_builder(temp_dir / "b_good.zip", {"good.csv": "1"})

        report = ArchiveProcessor().process(temp_dir)

        assert report.skipped == ["a_locked.zip"]
        assert report.extracted == ["b_good.zip"]
        assert "encrypted" in report.errors[0]
        assert (temp_dir / "a_locked.zip").exists()
        assert (temp_dir / "good.csv").exists()

    def test_unsupported_type_left_in_place(self, temp_dir: Path) -> None:
        png = temp_dir / "image.zip"
        png.write_bytes(b"\x89PNG\r\n\x1a\n" + b"\x00" * 32)

        report = ArchiveProcessor().process(temp_dir)

        assert report.skipped == ["image.zip"]
        assert "is not zip or gzip" in report.errors[0]
        assert png.exists()

    def test_missing_directory(self, temp_dir: Path) -> None:
        report = ArchiveProcessor().process(temp_dir / "missing")
        assert report.success
        assert report.extracted == []
