"""Argument Resolver - expands a descriptor's template into an argv.

Template tokens, in order:
- ``{target}``: replaced by the target string (one token, never split)
- ``{config:<key>}``: replaced by ``config_lookup(key)`` ("" if unset)
- anything else: kept literally

When the template has no ``{target}`` token, the target is appended as
the final argument.

The result is a literal argument vector for direct exec. It is never
joined into a shell command line, whatever the target contains.
"""

from __future__ import annotations

from smoked.core.models import ResolvedCommand
from smoked.operations.registry import (
    CONFIG_PLACEHOLDER,
    TARGET_PLACEHOLDER,
    OperationDescriptor,
)
from smoked.protocols import ConfigLookup


def resolve_arguments(
    descriptor: OperationDescriptor,
    target: str,
    config_lookup: ConfigLookup,
) -> list[str]:
    """Build the argument vector for one run.

    Args:
        descriptor: Shared descriptor; its template is never mutated.
        target: Validated target, passed through as a single argument.
        config_lookup: Read-only configuration access.

    Returns:
        New list of argument strings.
    """
    args = list(descriptor.argument_template)
    found = False

    for i, token in enumerate(args):
        if token == TARGET_PLACEHOLDER:
            args[i] = target
            found = True
            continue

        match = CONFIG_PLACEHOLDER.fullmatch(token)
        if match:
            args[i] = config_lookup(match.group("key")) or ""

    if not found:
        args.append(target)

    return args


def resolve_command(
    descriptor: OperationDescriptor,
    target: str,
    config_lookup: ConfigLookup,
) -> ResolvedCommand:
    """Resolve a descriptor into an executable plus argument vector."""
    return ResolvedCommand(
        executable=descriptor.command,
        arguments=tuple(resolve_arguments(descriptor, target, config_lookup)),
    )
