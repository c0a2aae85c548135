"""Dashboard rendering.

A pure function from a ``DashboardState`` snapshot to a ``rich`` renderable.
Colours live in an immutable ``Theme`` passed in by the caller; nothing here
holds state between frames.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from algopeeps.council.models.enums import AgentName

if TYPE_CHECKING:
    from rich.console import RenderableType

    from algopeeps.council.dispatch import DashboardState


@dataclass(frozen=True)
class Theme:
    reviewer: str = "#3B82F6"
    spotter: str = "#EF4444"
    border: str = "#3F3F46"
    connected: str = "#22C55E"
    disconnected: str = "#EF4444"
    dim: str = "#71717A"
    bright: str = "#FAFAFA"


DEFAULT_THEME = Theme()


@dataclass(frozen=True)
class AgentCard:
    agent: str
    title: str
    emoji: str


CARDS = (
    AgentCard(agent=AgentName.CODE_REVIEWER, title="Code Reviewer", emoji="🔍"),
    AgentCard(agent=AgentName.BUG_SPOTTER, title="Bug Spotter", emoji="🐛"),
)


def _accent(card: AgentCard, theme: Theme) -> str:
    return theme.reviewer if card.agent == AgentName.CODE_REVIEWER else theme.spotter


def render_agent_card(card: AgentCard, state: DashboardState, theme: Theme = DEFAULT_THEME) -> Panel:
    accent = _accent(card, theme)
    if state.thinking.get(card.agent):
        body = Text("Thinking...", style=f"italic {theme.dim}")
    else:
        body = Text(state.agents.get(card.agent, ""), style=theme.dim)
    return Panel(
        body,
        title=Text(f"{card.emoji} {card.title}", style=f"bold {accent}"),
        title_align="left",
        border_style=accent,
        padding=(1, 2),
    )


def render_summary(state: DashboardState, theme: Theme = DEFAULT_THEME) -> Text:
    filename = state.filename or "no file"
    filetype = state.filetype or "unknown"
    last_event = state.last_event or "Waiting..."
    return Text(
        f"📄 {filename} ({filetype}) | Line {state.cursor_line}, Col {state.cursor_col} "
        f"| {state.line_count} lines | {last_event}",
        style=theme.dim,
    )


def _status(label: str, up: bool, theme: Theme) -> Text:
    if up:
        return Text(f"{label} ●", style=theme.connected)
    return Text(f"{label} ○", style=theme.disconnected)


def render_status_bar(state: DashboardState, theme: Theme = DEFAULT_THEME) -> Text:
    session = f"Session: {state.session_id[:8]}" if state.session_id else "No session"
    bar = Text.assemble(
        _status("Neovim", state.editor_connected, theme),
        (" | ", theme.dim),
        _status("OpenCode", state.opencode_connected, theme),
        (f" | {session} | Press Ctrl+C to quit", theme.dim),
    )
    if state.last_error:
        bar.append(f" | Error: {state.last_error}", style=theme.disconnected)
    return bar


def render_dashboard(state: DashboardState, theme: Theme = DEFAULT_THEME) -> RenderableType:
    """Render the whole dashboard for one frame."""
    cards = Table.grid(expand=True, padding=(0, 1))
    for _ in CARDS:
        cards.add_column(ratio=1)
    cards.add_row(*(render_agent_card(card, state, theme) for card in CARDS))

    return Group(
        Text("ALGOPEEPS COUNCIL", style=f"bold {theme.bright}"),
        Text(""),
        cards,
        Text(""),
        Panel(render_summary(state, theme), border_style=theme.border),
        render_status_bar(state, theme),
    )
