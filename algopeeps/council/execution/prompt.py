"""Prompt construction for the agent council.

Every actionable buffer event becomes one prompt, rendered from a Jinja2
template with these variables:

- ``path``      : str -- file path (or buffer name for unnamed files)
- ``filetype``  : str -- editor filetype, also used as the fence language
- ``line``      : int -- cursor line
- ``col``       : int -- cursor column
- ``content``   : str -- buffer content, shaped by ``shape_content``
- ``event``     : str -- triggering editor event (``text_changed``, ...)

Large buffers are cut down to a window around the cursor before rendering so
a single prompt stays within a sane size.
"""

from __future__ import annotations

import jinja2

MAX_CONTENT_BYTES = 100 * 1024
CONTEXT_LINES = 50

PROMPT_TEMPLATE = """\
You are watching a live coding session. The user is editing:
File: {{ path }} ({{ filetype }})
Cursor: line {{ line }}, col {{ col }}

Current buffer content:
```{{ filetype }}
{{ content }}
```

Event: {{ event }}

Provide brief, actionable observations (2-3 sentences max)."""

_env = jinja2.Environment(autoescape=False, keep_trailing_newline=True)  # noqa: S701
_template = _env.from_string(PROMPT_TEMPLATE)


def omission_banner(count: int) -> str:
    return f"[...{count} lines omitted...]"


def truncate_around_cursor(content: str, cursor_line: int, context_lines: int = CONTEXT_LINES) -> str:
    """Keep ``context_lines`` lines on each side of ``cursor_line``.

    Lines ``[max(0, c - w), min(L, c + w))`` are kept verbatim, each followed
    by a newline; a banner announces how many lines were dropped before and
    after the window.
    """
    lines = content.split("\n")
    total = len(lines)

    start = min(max(0, cursor_line - context_lines), total)
    end = max(start, min(total, cursor_line + context_lines))

    parts: list[str] = []
    if start > 0:
        parts.append(omission_banner(start) + "\n")
    parts.extend(line + "\n" for line in lines[start:end])
    if end < total:
        parts.append(omission_banner(total - end) + "\n")
    return "".join(parts)


def shape_content(
    content: str,
    cursor_line: int,
    *,
    max_bytes: int = MAX_CONTENT_BYTES,
    context_lines: int = CONTEXT_LINES,
) -> str:
    """Return *content* unchanged if it fits in *max_bytes*, else a cursor window."""
    if len(content.encode("utf-8")) <= max_bytes:
        return content
    return truncate_around_cursor(content, cursor_line, context_lines)


def build_prompt(
    *,
    path: str,
    filetype: str,
    line: int,
    col: int,
    event: str,
    content: str,
) -> str:
    """Render the council prompt.  Deterministic for identical inputs."""
    return _template.render(
        path=path,
        filetype=filetype,
        line=line,
        col=col,
        content=content,
        event=event,
    )
