"""Tests for the fix applier engine."""

from __future__ import annotations

import pytest

from factories import make_issue
from repopolisher.engines.fix_applier import apply_fixes
from repopolisher.engines.fix_applier.applier import byte_hint_to_index, detect_newline
from repopolisher.services import NoFixableIssuesError, NoFixesAppliedError


def _write(root, name: str, content: str) -> None:
    path = root / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content.encode("utf-8"))


def _read(root, name: str) -> str:
    return (root / name).read_bytes().decode("utf-8")


class TestHelpers:
    def test_detect_newline_crlf(self):
        assert detect_newline("a\r\nb\nc") == "\r\n"

    def test_detect_newline_lf(self):
        assert detect_newline("a\nb\r\n") == "\n"

    def test_detect_newline_default(self):
        assert detect_newline("single line") == "\n"

    def test_byte_hint_ascii(self):
        assert byte_hint_to_index("hello teh world", 7) == 6

    def test_byte_hint_multibyte(self):
        # "é" is two bytes; byte offset 3 is character index 2
        line = "éa teh"
        assert byte_hint_to_index(line, 4) == 2
        assert line[byte_hint_to_index(line, 5):].startswith("teh")

    def test_byte_hint_past_end(self):
        assert byte_hint_to_index("abc", 50) == 3

    def test_byte_hint_clamped(self):
        assert byte_hint_to_index("abc", 0) == 0


class TestBatchValidation:
    def test_empty_batch(self, tmp_path):
        with pytest.raises(NoFixableIssuesError):
            apply_fixes(tmp_path, [])

    def test_no_suggestions(self, tmp_path):
        issue = make_issue(suggestion=None)
        with pytest.raises(NoFixableIssuesError, match="auto-fix suggestions"):
            apply_fixes(tmp_path, [issue])


class TestApply:
    def test_exact_column_replacement(self, tmp_path):
        _write(tmp_path, "README.md", "intro\nthis is teh widget\n")
        issue = make_issue(line=2, column=9, context="this is teh widget")

        result = apply_fixes(tmp_path, [issue])

        assert result.applied_issue_ids == {issue.id}
        assert result.warnings == []
        assert _read(tmp_path, "README.md") == "intro\nthis is the widget\n"
        assert [f.to_dict() for f in result.files] == [
            {"path": "README.md", "additions": 1, "deletions": 1}
        ]

    def test_crlf_preserved(self, tmp_path):
        _write(tmp_path, "doc.txt", "first teh\r\nsecond\r\n")
        issue = make_issue(file_path="doc.txt", line=1, column=7, context="first teh")

        apply_fixes(tmp_path, [issue])

        assert (tmp_path / "doc.txt").read_bytes() == b"first the\r\nsecond\r\n"

    def test_descending_order_keeps_offsets(self, tmp_path):
        _write(tmp_path, "a.py", "# teh recieve teh\n")
        first = make_issue(file_path="a.py", line=1, column=3, original="teh", suggestion="the")
        middle = make_issue(
            file_path="a.py", line=1, column=7, original="recieve", suggestion="receive"
        )
        last = make_issue(file_path="a.py", line=1, column=15, original="teh", suggestion="the")

        result = apply_fixes(tmp_path, [first, middle, last])

        assert result.applied_issue_ids == {first.id, middle.id, last.id}
        assert _read(tmp_path, "a.py") == "# the receive the\n"
        assert result.files[0].additions == 1

    def test_column_miss_falls_back_to_line_search(self, tmp_path):
        _write(tmp_path, "README.md", "teh start\n")
        issue = make_issue(line=1, column=40)

        result = apply_fixes(tmp_path, [issue])

        assert issue.id in result.applied_issue_ids
        assert _read(tmp_path, "README.md") == "the start\n"

    def test_context_relocation_when_file_shifted(self, tmp_path):
        _write(tmp_path, "README.md", "new header\nanother\n  teh widget  \n")
        issue = make_issue(line=1, column=1, context="teh widget")

        result = apply_fixes(tmp_path, [issue])

        assert issue.id in result.applied_issue_ids
        assert _read(tmp_path, "README.md") == "new header\nanother\n  the widget  \n"

    def test_line_past_eof_relocated_by_context(self, tmp_path):
        _write(tmp_path, "README.md", "teh widget")
        issue = make_issue(line=99, context="teh widget")

        result = apply_fixes(tmp_path, [issue])

        assert issue.id in result.applied_issue_ids
        assert _read(tmp_path, "README.md") == "the widget"

    def test_multibyte_line(self, tmp_path):
        _write(tmp_path, "notes.md", "café teh menu\n")
        # typos reports byte offset 6 ("café " is 6 bytes)
        issue = make_issue(file_path="notes.md", line=1, column=7, context="café teh menu")

        apply_fixes(tmp_path, [issue])

        assert _read(tmp_path, "notes.md") == "café the menu\n"


class TestWarnings:
    def test_line_missing_only_issue_fails(self, tmp_path):
        _write(tmp_path, "README.md", "one\ntwo\n")
        issue = make_issue(line=50, context="nothing like this")

        with pytest.raises(NoFixesAppliedError) as excinfo:
            apply_fixes(tmp_path, [issue])

        assert excinfo.value.warnings == ["Cannot apply fix (line missing): README.md:50"]
        assert "line missing" in str(excinfo.value)
        assert _read(tmp_path, "README.md") == "one\ntwo\n"

    def test_already_applied_reports_not_found(self, tmp_path):
        _write(tmp_path, "README.md", "the widget\n")
        issue = make_issue(line=1, context="teh widget")

        with pytest.raises(NoFixesAppliedError) as excinfo:
            apply_fixes(tmp_path, [issue])

        assert excinfo.value.warnings == ['Cannot find "teh" in README.md:1']

    def test_partial_success_keeps_warnings(self, tmp_path):
        _write(tmp_path, "README.md", "teh widget\n")
        good = make_issue(line=1)
        missing_file = make_issue(file_path="gone.md")

        result = apply_fixes(tmp_path, [good, missing_file])

        assert result.applied_issue_ids == {good.id}
        assert result.warnings == ["File not found: gone.md"]

    def test_path_outside_repository_is_skipped(self, tmp_path):
        repo = tmp_path / "repo"
        repo.mkdir()
        _write(tmp_path, "outside.md", "teh\n")
        _write(repo, "README.md", "teh widget\n")
        escaping = make_issue(file_path="../outside.md", context="teh")
        good = make_issue()

        result = apply_fixes(repo, [escaping, good])

        assert result.applied_issue_ids == {good.id}
        assert result.warnings == ["Path escapes repository: ../outside.md"]
        assert _read(tmp_path, "outside.md") == "teh\n"

    def test_undecodable_file_is_skipped(self, tmp_path):
        (tmp_path / "bin.dat").write_bytes(b"\xff\xfe teh")
        _write(tmp_path, "README.md", "teh widget\n")
        binary = make_issue(file_path="bin.dat")
        good = make_issue()

        result = apply_fixes(tmp_path, [binary, good])

        assert result.applied_issue_ids == {good.id}
        assert result.warnings == ["Cannot decode file as UTF-8: bin.dat"]
