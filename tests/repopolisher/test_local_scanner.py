"""Tests for the local directory scanner."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

from repopolisher.engines.local_scanner import count_languages, read_description, scan_directory

_MOD = "repopolisher.engines.local_scanner.scanner"


def _touch(path, text: str = "") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)


class TestCountLanguages:
    def test_counts_by_extension(self, tmp_path):
        _touch(tmp_path / "a.py")
        _touch(tmp_path / "pkg" / "b.py")
        _touch(tmp_path / "web" / "app.tsx")
        _touch(tmp_path / "README.md")

        assert count_languages(tmp_path) == {"Python": 2, "TypeScript": 1}

    def test_skips_vendor_dirs(self, tmp_path):
        _touch(tmp_path / "node_modules" / "lib" / "index.js")
        _touch(tmp_path / ".git" / "hooks" / "x.py")
        _touch(tmp_path / "main.go")

        assert count_languages(tmp_path) == {"Go": 1}

    def test_depth_limit(self, tmp_path):
        _touch(tmp_path / "a" / "b" / "c" / "shallow.rs")
        _touch(tmp_path / "a" / "b" / "c" / "d" / "deep.rs")

        assert count_languages(tmp_path) == {"Rust": 1}


class TestReadDescription:
    def test_package_json(self, tmp_path):
        _touch(tmp_path / "package.json", json.dumps({"description": "A JS widget"}))
        assert read_description(tmp_path) == "A JS widget"

    def test_pyproject_overrides_package_json(self, tmp_path):
        _touch(tmp_path / "package.json", json.dumps({"description": "A JS widget"}))
        _touch(tmp_path / "pyproject.toml", '[project]\nname = "w"\ndescription = "Py widget"\n')
        assert read_description(tmp_path) == "Py widget"

    def test_invalid_package_json(self, tmp_path):
        _touch(tmp_path / "package.json", "{oops")
        assert read_description(tmp_path) is None

    def test_none(self, tmp_path):
        assert read_description(tmp_path) is None


class TestScanDirectory:
    async def test_not_a_directory(self, tmp_path):
        assert await scan_directory(tmp_path / "missing") is None
        _touch(tmp_path / "file.txt")
        assert await scan_directory(tmp_path / "file.txt") is None

    async def test_plain_directory(self, tmp_path):
        project_dir = tmp_path / "widget"
        _touch(project_dir / "main.py")

        with patch(f"{_MOD}.read_origin_url", new_callable=AsyncMock) as origin:
            scanned = await scan_directory(project_dir)

        assert scanned is not None
        assert scanned.name == "widget"
        assert scanned.path == str(project_dir.resolve())
        assert scanned.languages == {"Python": 1}
        assert scanned.git_remote is None
        assert scanned.last_modified is not None
        origin.assert_not_awaited()

    async def test_git_directory_reads_origin(self, tmp_path):
        (tmp_path / ".git").mkdir()

        with patch(
            f"{_MOD}.read_origin_url",
            AsyncMock(return_value="git@github.com:acme/widget.git"),
        ):
            scanned = await scan_directory(tmp_path)

        assert scanned.git_remote == "git@github.com:acme/widget.git"
