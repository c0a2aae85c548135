"""Tests for dashboard rendering."""

from __future__ import annotations

from rich.console import Console

from algopeeps.council.dispatch import DashboardState
from algopeeps.council.render import render_dashboard, render_status_bar, render_summary


def _render(state: DashboardState) -> str:
    console = Console(record=True, width=140, color_system=None)
    console.print(render_dashboard(state))
    return console.export_text()


def test_empty_dashboard() -> None:
    text = _render(DashboardState())

    assert "ALGOPEEPS COUNCIL" in text
    assert "Code Reviewer" in text
    assert "Bug Spotter" in text
    assert "no file (unknown)" in text
    assert "Waiting..." in text
    assert "Neovim ○" in text
    assert "OpenCode ○" in text
    assert "No session" in text


def test_populated_dashboard() -> None:
    state = DashboardState(
        agents={"code-reviewer": "Consider extracting a helper."},
        thinking={"bug-spotter": True},
        editor_connections=1,
        opencode_connected=True,
        session_id="ses_0123456789abcdef",
        filename="main.go",
        filetype="go",
        cursor_line=3,
        cursor_col=7,
        line_count=42,
        last_event="text_changed",
    )

    text = _render(state)

    assert "Consider extracting a helper." in text
    assert "Thinking..." in text
    assert "main.go (go) | Line 3, Col 7 | 42 lines | text_changed" in text
    assert "Neovim ●" in text
    assert "OpenCode ●" in text
    assert "Session: ses_0123" in text


def test_summary_text() -> None:
    state = DashboardState(filename="a.py", filetype="python", line_count=10, last_event="buffer_write")
    assert render_summary(state).plain == "📄 a.py (python) | Line 0, Col 0 | 10 lines | buffer_write"


def test_status_bar_shows_last_error() -> None:
    state = DashboardState(last_error="OpenCode session: failed to create session after 3 attempts")
    plain = render_status_bar(state).plain

    assert plain.endswith("| Error: OpenCode session: failed to create session after 3 attempts")
    assert "Press Ctrl+C to quit" in plain
