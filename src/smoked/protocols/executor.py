"""Executor protocol for smoked.

This module defines the interfaces the Dispatcher depends on. Uses
`typing.Protocol` for structural subtyping.

Usage:
    from smoked.protocols import ExecutorProtocol

    class RecordingExecutor:
        async def execute(self, executable, arguments):
            ...

    assert isinstance(RecordingExecutor(), ExecutorProtocol)
"""

from __future__ import annotations

from typing import Callable, Protocol, Sequence, runtime_checkable

from smoked.core.models import ExecutionResult


ConfigLookup = Callable[[str], str]
FeaturePredicate = Callable[[str], bool]


@runtime_checkable
class ExecutorProtocol(Protocol):
    """Protocol for process executors.

    Implementations run ``executable`` directly (never through a shell)
    with ``arguments`` as a literal argument vector.

    Note:
        Tool failures are reported through ExecutionResult, not raised.
    """

    async def execute(
        self, executable: str, arguments: Sequence[str]
    ) -> ExecutionResult:
        """Run the command and capture merged stdout/stderr.

        Args:
            executable: Program name or path.
            arguments: Argument vector, passed through untouched.

        Returns:
            ExecutionResult with ``error`` set on any failure.
        """
        ...
