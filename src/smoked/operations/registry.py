"""Operation Registry - fixed table of supported diagnostics.

Descriptors are immutable and shared by every request. A registry is
built once at startup; operations whose feature is disabled are left out
entirely, so they are indistinguishable from unknown operations.

Usage:
    from smoked.operations.registry import build_registry

    registry = build_registry(feature_enabled=settings.feature_enabled)
    descriptor = registry.lookup("ping")  # None if unknown or disabled
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Optional

import structlog

from smoked.protocols import FeaturePredicate

log = structlog.get_logger(__name__)

TARGET_PLACEHOLDER = "{target}"
CONFIG_PLACEHOLDER = re.compile(r"\{config:(?P<key>[^{}]+)\}")


@dataclass(frozen=True)
class OperationDescriptor:
    """How to run and validate one diagnostic command.

    Attributes:
        name: Unique lookup key (e.g. "ping").
        command: External executable to invoke.
        argument_template: Literal tokens, ``{target}`` or ``{config:<key>}``.
        validation_classes: Target syntax classes; any one must match.
    """

    name: str
    command: str
    argument_template: tuple[str, ...]
    validation_classes: frozenset[str]

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("OperationDescriptor.name must not be empty")
        if not self.command:
            raise ValueError("OperationDescriptor.command must not be empty")
        if not self.validation_classes:
            raise ValueError(
                f"Operation '{self.name}' must declare at least one validation class"
            )
        # Accept lists/sets from callers but store immutable copies
        object.__setattr__(self, "argument_template", tuple(self.argument_template))
        object.__setattr__(self, "validation_classes", frozenset(self.validation_classes))

    @property
    def config_keys(self) -> list[str]:
        """Configuration keys referenced by the template."""
        return [
            m.group("key")
            for token in self.argument_template
            if (m := CONFIG_PLACEHOLDER.fullmatch(token))
        ]


DEFAULT_OPERATIONS: tuple[OperationDescriptor, ...] = (
    OperationDescriptor(
        name="mtr",
        command="mtr",
        argument_template=("-c", "5", "-r", "-w", "-b"),
        validation_classes=frozenset({"ip", "hostname"}),
    ),
    OperationDescriptor(
        name="traceroute",
        command="traceroute",
        argument_template=("-w", "1", "-q", "1"),
        validation_classes=frozenset({"ip", "hostname"}),
    ),
    OperationDescriptor(
        name="ping",
        command="ping",
        argument_template=("-c", "{config:feature.ping.count}"),
        validation_classes=frozenset({"ip", "hostname"}),
    ),
    OperationDescriptor(
        name="bgp",
        command="birdc",
        argument_template=("-r", "sh", "ro", "all", "for"),
        validation_classes=frozenset({"ip", "cidr"}),
    ),
)


class OperationRegistry(Mapping[str, OperationDescriptor]):
    """Immutable name → descriptor mapping.

    Safe for unsynchronized concurrent reads; nothing mutates it after
    construction.
    """

    def __init__(self, operations: Iterable[OperationDescriptor]) -> None:
        table: dict[str, OperationDescriptor] = {}
        for op in operations:
            if op.name in table:
                raise ValueError(f"Duplicate operation name: {op.name}")
            table[op.name] = op
        self._operations = MappingProxyType(table)

    def lookup(self, name: str) -> Optional[OperationDescriptor]:
        """Exact, case-sensitive lookup. Unknown names return None."""
        return self._operations.get(name)

    @property
    def names(self) -> list[str]:
        return list(self._operations)

    def __getitem__(self, name: str) -> OperationDescriptor:
        return self._operations[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._operations)

    def __len__(self) -> int:
        return len(self._operations)

    def __repr__(self) -> str:
        return f"OperationRegistry({self.names!r})"


def build_registry(
    operations: Iterable[OperationDescriptor] = DEFAULT_OPERATIONS,
    feature_enabled: Optional[FeaturePredicate] = None,
) -> OperationRegistry:
    """Build a registry, dropping operations whose feature is disabled.

    Args:
        operations: Descriptor table. Defaults to the built-in operations.
        feature_enabled: Predicate over operation names. None enables all.

    Returns:
        OperationRegistry with only the enabled operations.
    """
    enabled = []
    for op in operations:
        if feature_enabled is not None and not feature_enabled(op.name):
            log.info("operation_disabled", operation=op.name)
            continue
        enabled.append(op)

    registry = OperationRegistry(enabled)
    log.info("registry_built", operations=registry.names)
    return registry
