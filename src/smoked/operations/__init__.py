"""Smoked Operations Package - the dispatch engine.

This package contains:
- TargetValidator: Named syntax rules for untrusted targets (ip, hostname, cidr)
- OperationRegistry: Immutable table of supported diagnostics
- resolve_arguments: Template expansion into a literal argument vector
- ProcessExecutor: Shell-free child process execution
- Dispatcher: Request orchestration, always returns a response

Safety-Critical:
- Commands are exec'd directly, never through a shell
- Targets are passed as a single argv element, never split
"""

from smoked.operations.validation import TargetValidator, is_cidr, is_hostname, is_ip
from smoked.operations.registry import (
    DEFAULT_OPERATIONS,
    OperationDescriptor,
    OperationRegistry,
    build_registry,
)
from smoked.operations.arguments import resolve_arguments, resolve_command
from smoked.operations.executor import ProcessExecutor
from smoked.operations.dispatcher import INVALID_TARGET, INVALID_TYPE, Dispatcher

__all__ = [
    "TargetValidator",
    "is_ip",
    "is_hostname",
    "is_cidr",
    "DEFAULT_OPERATIONS",
    "OperationDescriptor",
    "OperationRegistry",
    "build_registry",
    "resolve_arguments",
    "resolve_command",
    "ProcessExecutor",
    "Dispatcher",
    "INVALID_TYPE",
    "INVALID_TARGET",
]
