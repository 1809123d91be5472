"""Protocol abstractions for smoked.

Structural interfaces for the collaborators injected into the dispatch
core, so tests can supply stubs without inheriting from anything.

Protocols:
    ConfigLookup: ``(key) -> str`` read-only configuration access.
    FeaturePredicate: ``(name) -> bool`` feature gate.
    ExecutorProtocol: Runs a resolved command and reports the outcome.
"""

from __future__ import annotations

from smoked.protocols.executor import ConfigLookup, ExecutorProtocol, FeaturePredicate

__all__ = [
    "ConfigLookup",
    "ExecutorProtocol",
    "FeaturePredicate",
]
