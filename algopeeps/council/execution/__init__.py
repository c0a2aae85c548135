"""Execution pipeline for the council.

- **prompt**: Content shaping and prompt rendering (Jinja2 template)
- **stream**: Backend push events -> mailbox notifications
"""
