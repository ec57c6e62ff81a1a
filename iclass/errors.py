"""
Error types raised by the session and the check-in scheduler.

The CLI catches IClassError, reports it once and still reaches the
final persistence step.
"""

from __future__ import annotations


class IClassError(Exception):
    """Base class for every reported failure."""


class ValidationError(IClassError):
    """Malformed user input, e.g. a time string like '2560'."""


class AuthError(IClassError):
    """SSO login or iClass identity resolution failed."""


class QueryError(IClassError):
    """Remote listing failed (courses or schedules)."""


class CheckinError(IClassError):
    """The remote side rejected a check-in."""
