"""Custom exception hierarchy for rpcramp."""

from __future__ import annotations


class RpcRampError(Exception):
    """Base exception for all rpcramp errors.

    All custom exceptions in rpcramp inherit from this class, making it
    easy to catch any rpcramp-specific error with a single except clause.
    """


class ConfigError(RpcRampError):
    """Raised when configuration is invalid or missing.

    Examples:
        - Required environment variable has an invalid value.
        - No endpoint URL was given.
        - A connection count or timeout is out of range.
    """


class RequestParseError(RpcRampError):
    """Raised when a JSON-RPC request payload cannot be parsed.

    In streaming mode this is reported per line and never aborts the run.
    """


class RequestFileError(RequestParseError):
    """Raised when the static request template cannot be read or parsed.

    This is fatal: the run aborts before any connection is opened.
    """


class ReportError(RpcRampError):
    """Raised when the results file cannot be created or written."""


class EngineError(RpcRampError):
    """Raised when the load test engine fails to execute."""
