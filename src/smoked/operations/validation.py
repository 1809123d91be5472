"""Target Validator - syntactic gate for untrusted targets.

A target is acceptable for an operation when it satisfies at least ONE
of the operation's validation classes (logical OR, short-circuit).

Built-in classes:
- ip: IPv4 or IPv6 literal (no zone/scope id)
- hostname: DNS hostname (1-63 char labels of [A-Za-z0-9-], no leading or
  trailing hyphen, total length <= 253, non-numeric top-level label)
- cidr: IPv4 or IPv6 ``address/prefixlen``

All rules match the WHOLE string. Empty and non-ASCII targets fail every
class. Unknown class names never match.

Usage:
    from smoked.operations.validation import TargetValidator

    validator = TargetValidator()
    validator.is_valid("192.0.2.1", ("ip", "hostname"))  # True
    validator.is_valid("; rm -rf /", ("ip", "hostname"))  # False

    # New classes are added without touching call sites
    validator.register_rule("asn", lambda t: re.fullmatch(r"AS\\d+", t) is not None)
"""

from __future__ import annotations

import re
from ipaddress import IPv6Address, ip_address
from typing import Callable, Iterable, Mapping, Optional

SyntaxRule = Callable[[str], bool]

MAX_HOSTNAME_LENGTH = 253

_LABEL_PATTERN = re.compile(r"[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?")
_PREFIX_PATTERN = re.compile(r"0|[1-9][0-9]{0,2}")


def is_ip(target: str) -> bool:
    """Return True if target is an IPv4 or IPv6 literal."""
    try:
        addr = ip_address(target)
    except ValueError:
        return False
    # Zone ids ("fe80::1%eth0") may carry arbitrary characters.
    if isinstance(addr, IPv6Address) and addr.scope_id is not None:
        return False
    return True


def is_hostname(target: str) -> bool:
    """Return True if target is a syntactically valid DNS hostname."""
    if not target or len(target) > MAX_HOSTNAME_LENGTH:
        return False

    labels = target.split(".")
    if not all(_LABEL_PATTERN.fullmatch(label) for label in labels):
        return False

    # "999.1.1.1" is a malformed address, not a hostname
    return not labels[-1].isdigit()


def is_cidr(target: str) -> bool:
    """Return True if target is ``address/prefixlen`` notation.

    Host bits may be set ("192.0.2.1/24" is accepted).
    """
    address, sep, prefix = target.partition("/")
    if not sep or not _PREFIX_PATTERN.fullmatch(prefix):
        return False
    if not is_ip(address):
        return False
    return int(prefix) <= ip_address(address).max_prefixlen


DEFAULT_RULES: Mapping[str, SyntaxRule] = {
    "ip": is_ip,
    "hostname": is_hostname,
    "cidr": is_cidr,
}


class TargetValidator:
    """Checks targets against named syntax rules.

    Rules are stored by class name; ``is_valid`` only ever looks them up,
    so extending the set of classes never changes callers.
    """

    def __init__(self, rules: Optional[Mapping[str, SyntaxRule]] = None) -> None:
        self._rules: dict[str, SyntaxRule] = dict(DEFAULT_RULES if rules is None else rules)

    @property
    def classes(self) -> frozenset[str]:
        """Names of the registered validation classes."""
        return frozenset(self._rules)

    def register_rule(self, name: str, rule: SyntaxRule) -> None:
        """Add or replace a validation class.

        Call at startup only; the rule table is read concurrently afterwards.
        """
        if not name:
            raise ValueError("Validation class name cannot be empty")
        self._rules[name] = rule

    def is_valid(self, target: str, validation_classes: Iterable[str]) -> bool:
        """Return True on the first class the target satisfies.

        Args:
            target: Untrusted target string.
            validation_classes: Class names to try, in order.

        Returns:
            True if any class matches, False otherwise.
        """
        if not target or not target.isascii():
            return False

        for name in validation_classes:
            rule = self._rules.get(name)
            if rule is not None and rule(target):
                return True
        return False
