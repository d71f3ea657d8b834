"""Exception types shared by the client, config and command layers."""

from __future__ import annotations


class RenderCLIError(Exception):
    """Base class for errors the CLI reports to the user."""


class InputError(RenderCLIError):
    """Malformed arguments. Raised before any remote call is made."""


class ConfigError(RenderCLIError):
    """Missing or unusable local configuration (API key, workspace)."""


class APIError(RenderCLIError):
    """The Render API returned an error or could not be reached."""

    def __init__(self, status: int | None, message: str) -> None:
        self.status = status
        self.message = message
        if status is None:
            super().__init__(message)
        else:
            super().__init__(f"Render API returned {status}: {message}")


class WaitTimeoutError(RenderCLIError):
    """An awaited remote action did not finish before the caller gave up."""


class InvalidTransition(RenderCLIError):
    """A state machine was asked to move backwards or out of a terminal state."""
