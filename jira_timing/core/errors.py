"""Exceptions raised by the timing engine and ingestion helpers."""

from __future__ import annotations


class TimingError(Exception):
    """Base class for errors raised by ``jira_timing``."""


class InvalidInputError(TimingError, ValueError):
    """Structurally malformed ticket input (e.g. a transition with no target status).

    Semantic messiness such as colliding or inverted timestamps never raises;
    only contract violations do. Callers catch this per ticket and continue.
    """

    def __init__(self, reason: str, *, ticket_key: str | None = None):
        self.reason = reason
        self.ticket_key = ticket_key
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.ticket_key:
            return f"{self.ticket_key}: {self.reason}"
        return self.reason

    def with_ticket(self, ticket_key: str | None) -> InvalidInputError:
        """Return a copy tagged with ``ticket_key`` (keeps an existing tag)."""
        if self.ticket_key or not ticket_key:
            return self
        return InvalidInputError(self.reason, ticket_key=ticket_key)


class InactiveConfigurationError(TimingError):
    """Raised when syncing through a configuration that has been deactivated."""
