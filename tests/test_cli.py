# -*- coding: utf-8 -*-
"""Tests for the packdiff command line interface."""

from pathlib import Path

import pytest
from typer.testing import CliRunner

from packdiff import __version__
from packdiff.cli.main import app

runner = CliRunner()


@pytest.fixture
def archives(make_archive):
    old = make_archive("old.tar.gz", {
        "1.json": [{"id": 1, "npi": 1}, {"id": 2}],
        "dictA.json": {"a": {"type": "string"}},
    })
    new = make_archive("new.tar.gz", {
        "1.json": [{"id": 1, "npi": 2}, {"id": 3}],
        "dictA.json": {"a": {"type": "integer"}},
    })
    return old, new


def _dirs(tmp_path):
    return ["--output-dir", str(tmp_path / "out"), "--work-dir", str(tmp_path / "work")]


class TestArguments:
    """Argument validation."""

    def test_no_arguments(self):
        result = runner.invoke(app, [])
        assert result.exit_code == 2

    def test_one_argument(self, archives):
        result = runner.invoke(app, [str(archives[0])])
        assert result.exit_code == 2

    def test_three_arguments(self, archives):
        old, new = archives
        result = runner.invoke(app, [str(old), str(new), str(new)])
        assert result.exit_code == 2

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout


class TestRun:
    """Successful and failing runs."""

    def test_run_writes_reports(self, archives, tmp_path):
        old, new = archives

        result = runner.invoke(app, [str(old), str(new), *_dirs(tmp_path), "--keep"])

        assert result.exit_code == 0, result.stdout
        out = tmp_path / "out"
        assert (out / "updates_new.diff").read_text(encoding="utf-8") == (
            "Update report (old - new)\n1 \n3 \n2 \n"
        )
        assert (out / "updates_ext_new.diff").is_file()
        assert "changes detected" in (out / "report.diff").read_text(encoding="utf-8")
        assert "Records changed" in result.stdout
        assert (tmp_path / "work" / "oldPackage").is_dir()

    def test_cleanup_flag(self, archives, tmp_path):
        old, new = archives

        result = runner.invoke(app, [str(old), str(new), *_dirs(tmp_path), "--cleanup"])

        assert result.exit_code == 0, result.stdout
        assert not (tmp_path / "work" / "oldPackage").exists()
        assert not (tmp_path / "work" / "newPackage").exists()

    @pytest.mark.parametrize("answer,removed", [("y\n", True), ("n\n", False)])
    def test_cleanup_prompt(self, archives, tmp_path, answer, removed):
        old, new = archives

        result = runner.invoke(app, [str(old), str(new), *_dirs(tmp_path)], input=answer)

        assert result.exit_code == 0, result.stdout
        assert "remove the temporary files" in result.stdout
        assert (tmp_path / "work" / "newPackage").exists() is not removed

    def test_missing_archive_exits_1(self, archives, tmp_path):
        _, new = archives

        result = runner.invoke(
            app, [str(tmp_path / "missing.tar.gz"), str(new), *_dirs(tmp_path), "--keep"],
        )

        assert result.exit_code == 1
        assert "[FAIL]" in result.stdout
        assert not Path(tmp_path / "out").exists()

    def test_corrupt_archive_exits_1(self, archives, tmp_path):
        old, _ = archives
        bad = tmp_path / "bad.tar.gz"
        bad.write_bytes(b"garbage")

        result = runner.invoke(app, [str(old), str(bad), *_dirs(tmp_path), "--keep"])

        assert result.exit_code == 1
        assert "[FAIL]" in result.stdout


class TestFailureMessages:
    """Failures end in a [FAIL] line and exit code 1."""

    def test_truncated_archive_exits_1(self, archives, tmp_path, make_archive):
        _, new = archives
        records = [{"id": i, "first_name": f"name-{i}", "city": f"city-{i * 7919}"} for i in range(2000)]
        cut = make_archive("cut.tar.gz", {"1.json": records, "2.json": records[::-1]})
        data = cut.read_bytes()
        cut.write_bytes(data[: len(data) // 2])

        result = runner.invoke(app, [str(cut), str(new), *_dirs(tmp_path), "--keep"])

        assert result.exit_code == 1
        assert "[FAIL]" in result.stdout
        assert "cut.tar.gz" in "".join(result.stdout.split())

    def test_invalid_env_config_exits_1(self, archives, tmp_path, monkeypatch):
        old, new = archives
        monkeypatch.setenv("PACKDIFF_LOG_LEVEL", "LOUD")

        result = runner.invoke(app, [str(old), str(new), *_dirs(tmp_path), "--keep"])

        assert result.exit_code == 1
        assert "[FAIL]" in result.stdout
        assert "log_level" in "".join(result.stdout.split())
        assert not (tmp_path / "out").exists()
