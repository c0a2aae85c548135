"""Exception hierarchy for the council pipeline.

Three families, matching where each one is handled:

- **Transport** (``BindError``): socket-level failures.  Only a failed bind
  escapes to the process; per-connection failures end that connection.
- **Decode** (``DecodeError``): malformed editor input.  Recovered inside the
  connection reader.
- **Backend** (``BackendError`` and friends): agent backend failures.
"""

from __future__ import annotations


class AlgopeepsError(Exception):
    """Base class for all council errors."""


# -- Transport -----------------------------------------------------------------


class BindError(AlgopeepsError, OSError):
    """The editor listener could not bind its address."""


# -- Decode --------------------------------------------------------------------


class DecodeError(AlgopeepsError, ValueError):
    """A framed line is not a valid buffer event."""


# -- Backend -------------------------------------------------------------------


class BackendError(AlgopeepsError):
    """An agent backend request failed (transport or non-2xx status)."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NoActiveSessionError(AlgopeepsError):
    """An operation needs a session id but none is held."""


class SessionCreationError(AlgopeepsError):
    """Session creation failed on every attempt of the retry budget.

    The last underlying failure is available as ``__cause__``.
    """

    def __init__(self, attempts: int, last_error: BaseException | None) -> None:
        super().__init__(f"failed to create session after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class PromptError(AlgopeepsError):
    """A prompt could not be submitted to an agent."""


class StreamError(AlgopeepsError):
    """The backend event stream terminated with an error."""
