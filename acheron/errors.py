"""
Error types for Acheron.

Unauthorized command use is not an error: the dispatcher treats it as a
normal branch and answers with a notice.
"""


class AcheronError(Exception):
    """Base class for all Acheron errors."""


class StoreUnavailable(AcheronError):
    """The store was used before ``init()`` or after ``close()``."""

    def __init__(self, message: str = "Store not initialized"):
        super().__init__(message)


class ConfigUnreadable(AcheronError):
    """The configuration file exists but cannot be parsed or validated."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read config {path}: {reason}")


class HandlerFailure(AcheronError):
    """A command handler raised while executing."""

    def __init__(self, command: str, original: BaseException):
        self.command = command
        self.original = original
        super().__init__(f"Command {command} failed: {original!r}")


class TransportSendFailure(AcheronError):
    """An outbound send could not be delivered by the transport."""


class TransportDeauthorized(AcheronError):
    """
    The transport session was logged out.

    Unlike a network drop this needs an operator: the session has to be
    paired again before reconnecting makes sense.
    """


class MigrationError(AcheronError):
    """A legacy data file could not be imported."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to import {path}: {reason}")
