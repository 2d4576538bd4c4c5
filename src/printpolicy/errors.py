"""
Exception hierarchy for printpolicy.

All printpolicy exceptions inherit from PrintPolicyError, allowing callers to
catch every library-specific exception with a single except clause.

Exception Categories:
    - ConfigurationError: Options could not be loaded or validated
    - ChoiceTokenError: A remembered-choice token is malformed
    - BalanceLookupError: The external balance service failed
    - JobCanceledError: An action was issued against an already canceled job

Rules never let these escape a pipeline. Configuration defects and service
failures are logged and degrade to "skip this step"; policy violations are
expressed as job cancellations, not exceptions.
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Configuration errors: 1xxx
ERROR_CONFIG_INVALID = 1001
ERROR_CONFIG_NOT_FOUND = 1002
ERROR_CONFIG_PARSE = 1003

# Choice token errors: 2xxx
ERROR_TOKEN_MALFORMED = 2001

# Balance errors: 3xxx
ERROR_BALANCE_UNAVAILABLE = 3001
ERROR_BALANCE_BAD_RESPONSE = 3002

# Host errors: 4xxx
ERROR_JOB_CANCELED = 4001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class PrintPolicyError(Exception):
    """
    Base exception for all printpolicy errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Configuration Errors
# =============================================================================


@dataclass
class ConfigurationError(PrintPolicyError):
    """
    Raised when rule options cannot be resolved.

    Attributes:
        source: Where the options came from (file path or "<inline>")
        errors: Individual validation messages
    """

    source: str = "<inline>"
    errors: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            detail = "; ".join(self.errors) if self.errors else "unknown error"
            self.message = f"Invalid options in {self.source}: {detail}"
        if self.code == 0:
            self.code = ERROR_CONFIG_INVALID
        self.context.update({
            "source": self.source,
            "errors": self.errors,
        })


@dataclass
class ConfigNotFoundError(ConfigurationError):
    """Raised when an options file does not exist."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Options file not found: {self.source}"
        if self.code == 0:
            self.code = ERROR_CONFIG_NOT_FOUND
        if not self.suggestion:
            self.suggestion = "Check the --config path"
        super().__post_init__()


@dataclass
class ConfigParseError(ConfigurationError):
    """Raised when an options file is not valid YAML or not a mapping."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Could not parse options file: {self.source}"
        if self.code == 0:
            self.code = ERROR_CONFIG_PARSE
        super().__post_init__()


# =============================================================================
# Choice Token Errors
# =============================================================================


@dataclass
class ChoiceTokenError(PrintPolicyError):
    """Raised by strict parsing when a remembered-choice token is malformed."""

    token: str = ""
    reason: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Malformed choice token {self.token!r}: {self.reason}"
        if self.code == 0:
            self.code = ERROR_TOKEN_MALFORMED
        if not self.suggestion:
            self.suggestion = "Expected '<true|false>|<expiry epoch millis>'"
        self.context.update({
            "token": self.token,
            "reason": self.reason,
        })


# =============================================================================
# Balance Errors
# =============================================================================


@dataclass
class BalanceLookupError(PrintPolicyError):
    """
    Raised when the external balance service cannot supply a balance.

    Attributes:
        provider: Name of the balance source
        username: User whose balance was requested
    """

    provider: str = ""
    username: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Balance unavailable from {self.provider} for {self.username}"
        if self.code == 0:
            self.code = ERROR_BALANCE_UNAVAILABLE
        self.context.update({
            "provider": self.provider,
            "username": self.username,
        })


@dataclass
class BalanceResponseError(BalanceLookupError):
    """Raised when the balance service answers with an unusable payload."""

    status_code: int | None = None

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = (
                f"Unusable balance response from {self.provider} "
                f"(status {self.status_code})"
            )
        if self.code == 0:
            self.code = ERROR_BALANCE_BAD_RESPONSE
        super().__post_init__()
        self.context["status_code"] = self.status_code


# =============================================================================
# Host Errors
# =============================================================================


@dataclass
class JobCanceledError(PrintPolicyError):
    """Raised by the recording host when a canceled job is mutated again."""

    action: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Job already canceled; refusing {self.action}"
        if self.code == 0:
            self.code = ERROR_JOB_CANCELED
        self.context["action"] = self.action
