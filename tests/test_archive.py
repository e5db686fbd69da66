# -*- coding: utf-8 -*-
"""Tests for archive extraction and directory helpers."""

import time

import pytest

from packdiff import archive as archive_module
from packdiff.archive import extract_archive, extract_packages, list_files, remove_directories
from packdiff.exceptions import DataAccessError, ExtractionError


class TestExtractArchive:
    """Single archive extraction."""

    def test_extract(self, tmp_path, make_archive):
        archive = make_archive("old.tar.gz", {"1.json": [{"id": 1}], "dictA.json": {}})

        target = extract_archive(archive, tmp_path / "oldPackage")

        assert sorted(p.name for p in target.iterdir()) == ["1.json", "dictA.json"]

    def test_stale_target_replaced(self, tmp_path, make_archive):
        """Files from an earlier run do not survive a new extraction."""
        target = tmp_path / "oldPackage"
        target.mkdir()
        (target / "stale.json").write_text("{}", encoding="utf-8")
        archive = make_archive("old.tar.gz", {"1.json": []})

        extract_archive(archive, target)

        assert list_files(target) == ["1.json"]

    def test_missing_archive(self, tmp_path):
        with pytest.raises(ExtractionError) as exc_info:
            extract_archive(tmp_path / "nope.tar.gz", tmp_path / "out")

        assert exc_info.value.failures == {str(tmp_path / "nope.tar.gz"): "file not found"}

    def test_corrupt_archive(self, tmp_path):
        archive = tmp_path / "broken.tar.gz"
        archive.write_bytes(b"definitely not a tarball")

        with pytest.raises(ExtractionError, match="Failed to extract"):
            extract_archive(archive, tmp_path / "out")


class TestExtractPackages:
    """Concurrent extraction of both packages."""

    def test_both_extracted(self, tmp_path, make_archive):
        old = make_archive("old.tar.gz", {"1.json": []})
        new = make_archive("new.tar.gz", {"2.json": []})

        extract_packages(old, new, tmp_path / "o", tmp_path / "n", timeout=30)

        assert list_files(tmp_path / "o") == ["1.json"]
        assert list_files(tmp_path / "n") == ["2.json"]

    def test_failures_aggregated(self, tmp_path, make_archive):
        """Each failing archive is reported, not just the first."""
        old = tmp_path / "bad_old.tar.gz"
        old.write_bytes(b"garbage")
        new = tmp_path / "missing_new.tar.gz"

        with pytest.raises(ExtractionError) as exc_info:
            extract_packages(old, new, tmp_path / "o", tmp_path / "n")

        assert set(exc_info.value.failures) == {str(old), str(new)}

    def test_one_failure_still_waits_for_other(self, tmp_path, make_archive):
        """A failing side does not prevent the other from completing."""
        good = make_archive("good.tar.gz", {"1.json": []})
        bad = tmp_path / "bad.tar.gz"
        bad.write_bytes(b"garbage")

        with pytest.raises(ExtractionError) as exc_info:
            extract_packages(good, bad, tmp_path / "o", tmp_path / "n")

        assert list(exc_info.value.failures) == [str(bad)]
        assert list_files(tmp_path / "o") == ["1.json"]


class TestDirectoryHelpers:
    """Listing and removal."""

    def test_list_files_pattern(self, make_package_dir):
        directory = make_package_dir("pkg", {
            "1.json": [], "12.json": [], "123.json": [], "dictA.json": {}, "x1.json": [],
        })
        (directory / "sub").mkdir()

        assert list_files(directory, r"\d{1,2}\.json") == ["1.json", "12.json"]
        assert list_files(directory, r"dict[A-Za-z]+\.json") == ["dictA.json"]
        assert "sub" not in list_files(directory)

    def test_list_missing_directory(self, tmp_path):
        with pytest.raises(DataAccessError) as exc_info:
            list_files(tmp_path / "missing")

        assert exc_info.value.context["operation"] == "list"

    def test_remove_directories(self, make_package_dir, tmp_path):
        first = make_package_dir("a", {"1.json": []})
        second = make_package_dir("b", {"1.json": []})

        remove_directories(first, second, tmp_path / "never_created")

        assert not first.exists()
        assert not second.exists()


def _truncated_archive(make_archive, name):
    """A gzip tarball cut in half: the stream ends mid-member."""
    records = [{"id": i, "first_name": f"name-{i}", "city": f"city-{i * 7919}"} for i in range(2000)]
    archive = make_archive(name, {"1.json": records, "2.json": records[::-1]})
    data = archive.read_bytes()
    archive.write_bytes(data[: len(data) // 2])
    return archive


class TestTruncatedArchives:
    """Compressed streams that end early."""

    def test_extract_archive_wraps_stream_errors(self, tmp_path, make_archive):
        archive = _truncated_archive(make_archive, "cut.tar.gz")

        with pytest.raises(ExtractionError) as exc_info:
            extract_archive(archive, tmp_path / "out")

        assert list(exc_info.value.failures) == [str(archive)]

    def test_extract_packages_names_truncated_archive(self, tmp_path, make_archive):
        bad = _truncated_archive(make_archive, "cut.tar.gz")
        good = make_archive("good.tar.gz", {"1.json": []})

        with pytest.raises(ExtractionError) as exc_info:
            extract_packages(bad, good, tmp_path / "o", tmp_path / "n")

        assert list(exc_info.value.failures) == [str(bad)]
        assert "cut.tar.gz" in exc_info.value.message


class TestExtractionTimeout:
    """Extractions that do not finish in time."""

    def test_timed_out_archives_reported(self, tmp_path, monkeypatch):
        def slow_extract(archive, target):
            time.sleep(1.0)
            return target

        monkeypatch.setattr(archive_module, "extract_archive", slow_extract)

        with pytest.raises(ExtractionError) as exc_info:
            extract_packages(
                tmp_path / "old.tar.gz", tmp_path / "new.tar.gz",
                tmp_path / "o", tmp_path / "n",
                timeout=0.05,
            )

        failures = exc_info.value.failures
        assert set(failures) == {str(tmp_path / "old.tar.gz"), str(tmp_path / "new.tar.gz")}
        assert all("timed out" in reason for reason in failures.values())

    def test_unexpected_error_recorded_per_archive(self, tmp_path, monkeypatch):
        def broken_extract(archive, target):
            raise RuntimeError("worker crashed")

        monkeypatch.setattr(archive_module, "extract_archive", broken_extract)

        with pytest.raises(ExtractionError) as exc_info:
            extract_packages(tmp_path / "a.tar.gz", tmp_path / "b.tar.gz", tmp_path / "o", tmp_path / "n")

        assert exc_info.value.failures[str(tmp_path / "a.tar.gz")] == "RuntimeError: worker crashed"
