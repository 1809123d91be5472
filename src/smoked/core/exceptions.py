"""Smoked Exception Hierarchy.

This module defines the structured exception hierarchy for smoked.
All custom exceptions inherit from SmokedError, enabling consistent
error handling across the codebase.

Exception Categories:
- Configuration/startup errors → Exceptions (abort startup)
- Client input errors → Exceptions, converted to responses by the Dispatcher
- Tool errors (non-zero exit, launch failure) → Result objects (ExecutionResult)

Usage:
    from smoked.core.exceptions import InvalidTargetError

    raise InvalidTargetError(
        operation="ping",
        target="; rm -rf /",
        validation_classes=("ip", "hostname"),
    )
"""

from typing import Any, Optional, Sequence


class SmokedError(Exception):
    """Base exception for all smoked errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: Optional[str] = None) -> None:
        """Initialize SmokedError.

        Args:
            message: Optional custom message. Defaults to a generic message.
        """
        self.message = message or "A smoked error occurred."
        super().__init__(self.message)

    @property
    def context(self) -> dict[str, Any]:
        """Return context dictionary for structured logging.

        Returns:
            dict: Key-value pairs of exception context.
        """
        return {}

    def __repr__(self) -> str:
        """Return debug representation."""
        return f"{self.__class__.__name__}({self.message!r})"


class ConfigurationError(SmokedError):
    """Configuration file or value is invalid.

    Raised when YAML configuration cannot be parsed or
    contains invalid values.

    Attributes:
        config_path: Path to the configuration file.
        key: The configuration key that caused the error.
        expected_type: The expected type for the value.
    """

    def __init__(
        self,
        config_path: str,
        key: Optional[str] = None,
        expected_type: Optional[str] = None,
        message: Optional[str] = None,
    ) -> None:
        """Initialize ConfigurationError.

        Args:
            config_path: Path to the config file.
            key: Optional key that caused the error.
            expected_type: Optional expected type.
            message: Optional custom message.
        """
        self.config_path = config_path
        self.key = key
        self.expected_type = expected_type

        if message is None:
            key_info = f" key '{key}'" if key else ""
            type_info = f" (expected {expected_type})" if expected_type else ""
            message = f"Configuration error in '{config_path}'{key_info}{type_info}."

        super().__init__(message)

    @property
    def context(self) -> dict[str, Any]:
        """Return context for configuration error."""
        return {
            "config_path": self.config_path,
            "key": self.key,
            "expected_type": self.expected_type,
        }

    def __repr__(self) -> str:
        """Return debug representation with attributes."""
        return (
            f"ConfigurationError(config_path={self.config_path!r}, "
            f"key={self.key!r}, expected_type={self.expected_type!r})"
        )


class RequestDecodeError(SmokedError):
    """Request payload could not be decoded.

    The message text is returned verbatim to the client as the
    response error.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)


class OperationNotFoundError(SmokedError):
    """Requested operation type is unknown or disabled.

    Attributes:
        operation: The operation name that was requested.
    """

    def __init__(self, operation: str, message: Optional[str] = None) -> None:
        self.operation = operation
        if message is None:
            message = f"Operation '{operation}' is not available."
        super().__init__(message)

    @property
    def context(self) -> dict[str, Any]:
        """Return context for unknown operation."""
        return {"operation": self.operation}

    def __repr__(self) -> str:
        return f"OperationNotFoundError(operation={self.operation!r})"


class InvalidTargetError(SmokedError):
    """Target matched none of the operation's validation classes.

    Attributes:
        operation: The operation the target was submitted for.
        target: The rejected target string.
        validation_classes: The classes that were tried.
    """

    def __init__(
        self,
        operation: str,
        target: str,
        validation_classes: Sequence[str],
        message: Optional[str] = None,
    ) -> None:
        """Initialize InvalidTargetError.

        Args:
            operation: Operation name.
            target: The rejected target.
            validation_classes: Validation classes the target failed.
            message: Optional custom message.
        """
        self.operation = operation
        self.target = target
        self.validation_classes = tuple(validation_classes)

        if message is None:
            message = (
                f"Target '{target}' is not valid for '{operation}' "
                f"(expected one of: {', '.join(self.validation_classes)})."
            )

        super().__init__(message)

    @property
    def context(self) -> dict[str, Any]:
        """Return context for rejected target."""
        return {
            "operation": self.operation,
            "target": self.target,
            "validation_classes": list(self.validation_classes),
        }

    def __repr__(self) -> str:
        return (
            f"InvalidTargetError(operation={self.operation!r}, "
            f"target={self.target!r}, "
            f"validation_classes={self.validation_classes!r})"
        )
