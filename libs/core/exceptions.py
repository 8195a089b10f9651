"""Custom exceptions for the RAA verifier."""

from typing import Any, Optional


class VerifierError(Exception):
    """Base exception for the verifier service."""

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class PatternError(VerifierError):
    """Normalized code does not match the accepted code pattern."""

    def __init__(self, code: str, context: Optional[dict[str, Any]] = None):
        super().__init__(f"Code does not match pattern: {code!r}", context)
        self.code = code


class RateLimitedError(VerifierError):
    """Client sent a verification request too soon after the previous one."""

    def __init__(
        self,
        client_key: str,
        retry_after_ms: int,
        context: Optional[dict[str, Any]] = None,
    ):
        message = f"Rate limited: {client_key} must wait {retry_after_ms}ms"
        super().__init__(message, context)
        self.client_key = client_key
        self.retry_after_ms = retry_after_ms


class BrowserLaunchError(VerifierError):
    """
    Shared browser could not be launched.

    Surfaced to the request that triggered the launch (and to every request
    waiting on the same launch). The next acquire starts a fresh launch.
    """

    pass


class UpstreamAutomationError(VerifierError):
    """Navigation, element lookup or timeout failure while driving the site."""

    def __init__(
        self,
        stage: str,
        message: str,
        context: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, context)
        self.stage = stage


class PopupDismissalFailure(VerifierError):
    """
    A single popup dismissal attempt failed.

    Never raised. Instances are collected on DismissalOutcome.failures so the
    caller can log them.
    """

    def __init__(
        self,
        strategy: str,
        message: str,
        context: Optional[dict[str, Any]] = None,
    ):
        super().__init__(f"{strategy}: {message}", context)
        self.strategy = strategy
