"""
Tests for output rendering (upcheck/render.py).
"""

import io

import pytest

from upcheck import render
from upcheck.history import bulk_entry
from upcheck.models import CheckVerdict, CommandOutcome
from upcheck.render import (
    format_verdict,
    is_major_jump,
    render_history,
    render_outcome,
    render_status,
    render_verdicts,
    status_icon,
    version_jump,
)
from upcheck.result_store import LatestResultState, ResultSnapshot


@pytest.fixture(autouse=True)
def plain_output(monkeypatch):
    """Render without ANSI codes or emoji."""
    monkeypatch.setattr(render, "USE_COLOR", False)
    monkeypatch.setattr(render, "USE_EMOJI", False)


def _verdict(**kwargs):
    kwargs.setdefault("item_id", "brew")
    kwargs.setdefault("checked_at", "2026-01-01T00:00:00+00:00")
    kwargs.setdefault("has_update", False)
    return CheckVerdict(**kwargs)


class TestVersionJump:
    """Tests for version display helpers."""

    @pytest.mark.parametrize("current,latest,expected", [
        ("1.2.0", "2.0.0", True),
        ("v1.9", "v2.0", True),
        ("1.2.0", "1.3.0", False),
        ("2.0.0", "1.0.0", False),
        ("abc", "2.0.0", False),
        (None, "2.0.0", False),
    ])
    def test_is_major_jump(self, current, latest, expected):
        assert is_major_jump(current, latest) is expected

    def test_jump_text(self):
        assert version_jump("1.2.0", "1.3.0") == "1.2.0 → 1.3.0"
        assert version_jump("1.2.0", "2.0.0") == "1.2.0 → 2.0.0 (major)"

    def test_partial_versions(self):
        assert version_jump("1.2.0", None) == "1.2.0"
        assert version_jump(None, "2.0") == "2.0"
        assert version_jump(None, None) == "-"


class TestFormatVerdict:
    """Tests for verdict formatting."""

    def test_icons(self):
        assert status_icon(False, "boom") == "x"
        assert status_icon(True, None) == "↑"
        assert status_icon(False, None) == "✓"

    def test_update_available(self):
        line = format_verdict(
            _verdict(has_update=True, current_version="4.2", latest_version="4.3"),
            "Homebrew",
        )
        assert line == "↑ Homebrew: update available (4.2 → 4.3)"

    def test_up_to_date_uses_item_id(self):
        line = format_verdict(_verdict(current_version="1.0"))
        assert line == "✓ brew: up to date (1.0)"

    def test_error(self):
        line = format_verdict(CheckVerdict.failure("brew", "no network"))
        assert line == "x brew: no network"

    def test_render_verdicts_order(self):
        out = io.StringIO()
        render_verdicts(
            [_verdict(item_id="b"), _verdict(item_id="a")],
            {"a": "Alpha"},
            out=out,
        )
        lines = out.getvalue().splitlines()
        assert lines[0].startswith("✓ b:")
        assert lines[1].startswith("✓ Alpha:")


class TestRenderOutcome:
    """Tests for command outcome rendering."""

    def test_success(self):
        out = io.StringIO()
        outcome = CommandOutcome(command="brew update", exit_code=0, stdout="ok", stderr="", duration_ms=12)
        render_outcome(outcome, out=out)
        assert out.getvalue() == "$ brew update  [exit 0, 12ms]\nok\n"

    def test_timeout(self):
        out = io.StringIO()
        outcome = CommandOutcome(
            command="sleep 9",
            exit_code=-124,
            stdout="",
            stderr="command timed out after 1s",
            duration_ms=1000,
            timed_out=True,
        )
        render_outcome(outcome, out=out)
        assert "[timed out, 1000ms]" in out.getvalue()
        assert "command timed out after 1s" in out.getvalue()


class TestRenderStatus:
    """Tests for persisted status rendering."""

    def test_empty(self):
        out = io.StringIO()
        render_status(LatestResultState(), out=out)
        assert out.getvalue() == "No check results recorded yet.\n"

    def test_summary_line(self):
        out = io.StringIO()
        state = LatestResultState(
            items={
                "brew": ResultSnapshot("brew", "t1", has_update=True, current_version="1", latest_version="2"),
                "bun": ResultSnapshot("bun", "t2", error="boom"),
            },
            updated_at="t2",
        )
        render_status(state, {"brew": "Homebrew"}, out=out)
        lines = out.getvalue().splitlines()
        assert lines[0] == "↑ Homebrew: 1 → 2 (major)  (checked t1)"
        assert lines[1] == "x bun: boom  (checked t2)"
        assert lines[2] == "1 updates available, 1 errors (updated t2)"


class TestRenderHistory:
    """Tests for history rendering."""

    def test_empty(self):
        out = io.StringIO()
        render_history([], out=out)
        assert out.getvalue() == "No history recorded yet.\n"

    def test_entries(self):
        out = io.StringIO()
        entry = bulk_entry("check-all", True, "Checked 2 items, found 0 updates, 0 errors")
        render_history([entry], out=out)
        line = out.getvalue().strip()
        assert "✓ check-all [enabled-items]" in line
        assert line.endswith("Checked 2 items, found 0 updates, 0 errors")
