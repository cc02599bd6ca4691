"""Tests for the typos checker adapter."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from repopolisher.engines.typo_checker import TypoChecker, parse_typos_output
from repopolisher.engines.typo_checker.checker import DEFAULT_EXCLUDES
from repopolisher.services import CheckerFailedError, ToolExecutionError, ToolNotInstalledError

ROOT = "/work/widget"


def _record(**overrides) -> str:
    record = {
        "type": "typo",
        "path": f"{ROOT}/src/main.py",
        "line_num": 12,
        "byte_offset": 4,
        "typo": "recieve",
        "corrections": ["receive"],
        "context": {"line": "    recieve(data)"},
    }
    record.update(overrides)
    return json.dumps(record)


def _proc(returncode: int, stdout: str = "", stderr: str = "") -> MagicMock:
    proc = MagicMock()
    proc.returncode = returncode
    proc.communicate = AsyncMock(return_value=(stdout.encode(), stderr.encode()))
    return proc


class TestParseOutput:
    def test_maps_fields(self):
        [issue] = parse_typos_output(_record(), "task-1", "proj-1", ROOT)

        assert issue.task_id == "task-1"
        assert issue.project_id == "proj-1"
        assert issue.file_path == "src/main.py"
        assert issue.line == 12
        assert issue.column == 5
        assert issue.original == "recieve"
        assert issue.suggestion == "receive"
        assert issue.message == '"recieve" should be "receive"'
        assert issue.context == "    recieve(data)"
        assert issue.confidence == 0.95
        assert issue.severity == "warning"
        assert issue.status == "open"
        assert issue.id

    def test_ids_are_unique(self):
        output = "\n".join([_record(), _record(line_num=13)])
        issues = parse_typos_output(output, "t", "p", ROOT)
        assert len({i.id for i in issues}) == 2

    def test_no_corrections(self):
        [issue] = parse_typos_output(_record(corrections=[]), "t", "p", ROOT)
        assert issue.suggestion is None
        assert issue.message == '"recieve" should be "unknown"'

    def test_missing_position_defaults(self):
        line = json.dumps(
            {"type": "typo", "path": f"{ROOT}/a.md", "typo": "teh", "corrections": ["the"]}
        )
        [issue] = parse_typos_output(line, "t", "p", ROOT)
        assert issue.line == 1
        assert issue.column == 1
        assert issue.context == ""

    def test_skips_other_record_types(self):
        binary = json.dumps({"type": "binary_file", "path": f"{ROOT}/logo.png"})
        issues = parse_typos_output("\n".join([binary, _record()]), "t", "p", ROOT)
        assert len(issues) == 1

    def test_path_outside_root_kept_verbatim(self):
        [issue] = parse_typos_output(_record(path="/elsewhere/x.py"), "t", "p", ROOT)
        assert issue.file_path == "/elsewhere/x.py"

    def test_root_with_trailing_separator(self):
        [issue] = parse_typos_output(_record(), "t", "p", ROOT + "/")
        assert issue.file_path == "src/main.py"


class TestBuildArgs:
    def test_default_excludes_and_path(self):
        checker = TypoChecker(binary_path="typos", config_path=None)
        args = checker.build_args(ROOT)

        assert args[:2] == ["--format", "json"]
        assert args[-1] == ROOT
        assert args.count("--exclude") == len(DEFAULT_EXCLUDES)
        assert "--config" not in args

    def test_config_passed_only_when_present(self, tmp_path):
        config = tmp_path / "typos.toml"
        missing = TypoChecker(binary_path="typos", config_path=str(config))
        assert "--config" not in missing.build_args(ROOT)

        config.write_text("[default]\n")
        present = TypoChecker(binary_path="typos", config_path=str(config))
        args = present.build_args(ROOT)
        assert args[args.index("--config") + 1] == str(config)


class TestCheck:
    async def test_exit_two_with_malformed_line(self):
        stdout = "\n".join([_record(), "{not json", _record(line_num=20)])
        checker = TypoChecker(binary_path="typos")

        with patch(
            "asyncio.create_subprocess_exec", AsyncMock(return_value=_proc(2, stdout))
        ) as spawn:
            issues = await checker.check(ROOT, "task-1", "proj-1")

        assert len(issues) == 2
        assert all(i.status == "open" for i in issues)
        assert spawn.await_args.args[0] == "typos"

    async def test_exit_zero_no_findings(self):
        checker = TypoChecker(binary_path="typos")
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=_proc(0))):
            assert await checker.check(ROOT, "t", "p") == []

    async def test_unexpected_exit_code(self):
        checker = TypoChecker(binary_path="typos")
        with patch(
            "asyncio.create_subprocess_exec",
            AsyncMock(return_value=_proc(1, stderr="error: invalid config")),
        ):
            with pytest.raises(CheckerFailedError) as excinfo:
                await checker.check(ROOT, "t", "p")

        assert excinfo.value.exit_code == 1
        assert isinstance(excinfo.value, ToolExecutionError)
        assert "invalid config" in str(excinfo.value)

    async def test_not_found_in_stderr(self):
        checker = TypoChecker(binary_path="typos")
        with patch(
            "asyncio.create_subprocess_exec",
            AsyncMock(return_value=_proc(127, stderr="typos: command not found")),
        ):
            with pytest.raises(ToolNotInstalledError):
                await checker.check(ROOT, "t", "p")

    async def test_spawn_failure(self):
        checker = TypoChecker(binary_path="/nope/typos")
        with patch(
            "asyncio.create_subprocess_exec", AsyncMock(side_effect=FileNotFoundError("typos"))
        ):
            with pytest.raises(ToolNotInstalledError, match="cargo install typos-cli"):
                await checker.check(ROOT, "t", "p")


class TestVersion:
    async def test_version_parsed(self):
        checker = TypoChecker(binary_path="typos")
        with patch(
            "asyncio.create_subprocess_exec",
            AsyncMock(return_value=_proc(0, "typos-cli 1.16.23\n")),
        ):
            assert await checker.get_version() == "1.16.23"

    async def test_version_raw_when_unmatched(self):
        checker = TypoChecker(binary_path="typos")
        with patch(
            "asyncio.create_subprocess_exec", AsyncMock(return_value=_proc(0, "v2-dev\n"))
        ):
            assert await checker.get_version() == "v2-dev"

    async def test_unavailable_when_missing(self):
        checker = TypoChecker(binary_path="typos")
        with patch(
            "asyncio.create_subprocess_exec", AsyncMock(side_effect=FileNotFoundError("typos"))
        ):
            assert await checker.is_available() is False
            assert await checker.get_version() is None

    async def test_available(self):
        checker = TypoChecker(binary_path="typos")
        with patch(
            "asyncio.create_subprocess_exec", AsyncMock(return_value=_proc(0, "typos-cli 1.0.0"))
        ):
            assert await checker.is_available() is True

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("REPOPOLISHER_TYPOS_PATH", "/opt/bin/typos")
        assert TypoChecker().binary_path == "/opt/bin/typos"
