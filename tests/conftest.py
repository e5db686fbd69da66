# -*- coding: utf-8 -*-
"""Pytest configuration and shared fixtures."""

import io
import json
import tarfile
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Union

import pytest

from packdiff.config import PackDiffConfig, reset_config

PackageContent = Dict[str, Union[str, Iterable[Dict[str, Any]], Dict[str, Any]]]


def jsonl(records: Iterable[Dict[str, Any]]) -> str:
    """Render records as newline-delimited JSON."""
    return "".join(json.dumps(r) + "\n" for r in records)


def _render(name: str, content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, dict):
        return json.dumps(content)
    return jsonl(content)


def write_package_dir(directory: Path, files: PackageContent) -> Path:
    """Write an extracted package: str as-is, dict as JSON, list as JSON lines."""
    directory.mkdir(parents=True, exist_ok=True)
    for name, content in files.items():
        (directory / name).write_text(_render(name, content), encoding="utf-8")
    return directory


def write_package_archive(path: Path, files: PackageContent) -> Path:
    """Write a gzip tar archive holding ``files`` at its top level."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(path, "w:gz") as tar:
        for name, content in files.items():
            data = _render(name, content).encode("utf-8")
            info = tarfile.TarInfo(name=name)
            info.size = len(data)
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(data))
    return path


@pytest.fixture(autouse=True)
def _reset_packdiff_config():
    """Every test starts without a cached configuration singleton."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def config(tmp_path) -> PackDiffConfig:
    """Configuration isolated to the test's temporary directory."""
    return PackDiffConfig(
        work_dir=str(tmp_path / "work"),
        output_dir=str(tmp_path / "out"),
        cleanup=False,
    )


@pytest.fixture
def make_archive(tmp_path) -> Callable[[str, PackageContent], Path]:
    """Factory building ``<tmp>/archives/<name>`` from a file mapping."""

    def _make(name: str, files: PackageContent) -> Path:
        return write_package_archive(tmp_path / "archives" / name, files)

    return _make


@pytest.fixture
def make_package_dir(tmp_path) -> Callable[[str, PackageContent], Path]:
    """Factory building an already extracted package directory."""

    def _make(name: str, files: PackageContent) -> Path:
        return write_package_dir(tmp_path / name, files)

    return _make


@pytest.fixture
def sample_record() -> Dict[str, Any]:
    """A fully populated record as found in a record file."""
    return {
        "id": 5,
        "npi": 111,
        "ttid": 42,
        "first_name": "Ann",
        "middle_name": "B",
        "last_name": "Smith",
        "specialties": ["cardiology", "oncology"],
        "location": {
            "location": 900,
            "affiliation": "General Hospital",
            "city": "Springfield",
            "address": "1 Main St",
            "zip": "62701",
            "state": "IL",
            "country": "US",
            "latitude": "39.78",
            "longitude": "-89.65",
        },
        "ranking.position": 3,
    }
