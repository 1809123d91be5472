"""Core Data Models for smoked.

This module defines the dataclasses that flow through one request:
the decoded request, the resolved command line, the raw execution
result and the response returned to the client.

Models:
    LookingGlassRequest: Decoded client request (operation type + target).
    ResolvedCommand: Executable plus literal argument vector.
    ExecutionResult: Process outcome (expected tool errors, not exceptions).
    LookingGlassResponse: The only externally visible result shape.

Usage:
    from smoked.core.models import LookingGlassRequest, LookingGlassResponse

    request = LookingGlassRequest.from_json(b'{"type": "ping", "target": "8.8.8.8"}')
    response = LookingGlassResponse.ok("PING 8.8.8.8 ...")
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Optional, Union

from smoked.core.exceptions import RequestDecodeError


@dataclass(frozen=True)
class LookingGlassRequest:
    """Client request for a single diagnostic run.

    Attributes:
        type: Operation name (e.g. "ping"), matched case-sensitively.
        target: Untrusted host, IP or CIDR string.
    """

    type: str = ""
    target: str = ""

    @classmethod
    def from_json(cls, data: Union[str, bytes, dict[str, Any]]) -> LookingGlassRequest:
        """Decode a request from a JSON payload.

        Missing fields decode to empty strings so that they are rejected
        by the Dispatcher like any other unknown type or invalid target.
        Unknown fields are ignored.

        Args:
            data: Raw JSON text/bytes or an already parsed object.

        Returns:
            LookingGlassRequest instance.

        Raises:
            RequestDecodeError: If the payload is not a JSON object with
                string fields, or is nested too deeply to decode.
        """
        if isinstance(data, (str, bytes)):
            try:
                data = json.loads(data)
            except (json.JSONDecodeError, UnicodeDecodeError, RecursionError) as e:
                raise RequestDecodeError(f"Invalid JSON payload: {e}") from e

        if not isinstance(data, dict):
            raise RequestDecodeError("Request body must be a JSON object")

        values: dict[str, str] = {}
        for name in ("type", "target"):
            value = data.get(name, "")
            if value is None:
                value = ""
            if not isinstance(value, str):
                raise RequestDecodeError(f"Field '{name}' must be a string")
            values[name] = value

        return cls(**values)


@dataclass(frozen=True)
class ResolvedCommand:
    """Executable plus literal argument vector, ready to run.

    Never joined into a shell string.
    """

    executable: str
    arguments: tuple[str, ...] = field(default_factory=tuple)

    @property
    def argv(self) -> list[str]:
        """Full argv including the executable."""
        return [self.executable, *self.arguments]


@dataclass
class ExecutionResult:
    """Process execution result.

    Used for expected tool errors. A failed run is reported here with
    ``error`` set, never raised.

    Attributes:
        output: Merged stdout/stderr bytes captured from the child.
        exit_code: Process exit code (-1 when the process never ran or was killed).
        duration_ms: Execution duration in milliseconds.
        error: Failure message, None on success.
        error_type: Optional error classification. Valid values:
            - None: Success (no error)
            - "NON_ZERO_EXIT": Command returned non-zero exit code
            - "LAUNCH_FAILED": Executable missing or not runnable
            - "TIMEOUT": Execution exceeded the configured deadline
            - "OUTPUT_LIMIT": Output exceeded the configured cap
    """

    output: bytes
    exit_code: int
    duration_ms: int
    error: Optional[str] = None
    error_type: Optional[str] = None

    @property
    def success(self) -> bool:
        """Whether the process exited with status 0."""
        return self.error is None

    @property
    def text(self) -> str:
        """Captured output decoded as UTF-8, undecodable bytes replaced."""
        return self.output.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class LookingGlassResponse:
    """Response payload: exactly one of ``error`` and ``data`` is set.

    Attributes:
        error: Non-empty failure message.
        data: Captured command output as text (may be empty).
    """

    error: Optional[str] = None
    data: Optional[str] = None

    def __post_init__(self) -> None:
        """Enforce mutual exclusivity of error and data."""
        if (self.error is None) == (self.data is None):
            raise ValueError("LookingGlassResponse requires exactly one of error or data")
        if self.error is not None and not self.error:
            raise ValueError("LookingGlassResponse.error must not be empty")

    @classmethod
    def ok(cls, data: str) -> LookingGlassResponse:
        """Create a success response."""
        return cls(data=data)

    @classmethod
    def fail(cls, message: str) -> LookingGlassResponse:
        """Create an error response."""
        return cls(error=message or "Execution failed")

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_dict(self) -> dict[str, str]:
        """Serialize to a dict, omitting the absent field."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict())
