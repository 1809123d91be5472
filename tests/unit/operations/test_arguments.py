"""Unit tests for smoked.operations.arguments."""

import pytest

from smoked.operations.arguments import resolve_arguments, resolve_command
from smoked.operations.registry import (
    DEFAULT_OPERATIONS,
    OperationDescriptor,
    OperationRegistry,
)


@pytest.fixture
def registry() -> OperationRegistry:
    return OperationRegistry(DEFAULT_OPERATIONS)


class TestBuiltInOperations:
    """Fallback-append applies to every built-in operation."""

    def test_traceroute(self, registry, config_lookup):
        args = resolve_arguments(registry.lookup("traceroute"), "example.com", config_lookup)
        assert args == ["-w", "1", "-q", "1", "example.com"]

    def test_ping_uses_configured_count(self, registry):
        args = resolve_arguments(registry.lookup("ping"), "192.0.2.1", lambda key: "3")
        assert args == ["-c", "3", "192.0.2.1"]

    def test_ping_default_count(self, registry, config_lookup):
        args = resolve_arguments(registry.lookup("ping"), "192.0.2.1", config_lookup)
        assert args == ["-c", "5", "192.0.2.1"]

    def test_mtr(self, registry, config_lookup):
        args = resolve_arguments(registry.lookup("mtr"), "2001:db8::1", config_lookup)
        assert args == ["-c", "5", "-r", "-w", "-b", "2001:db8::1"]

    def test_bgp(self, registry, config_lookup):
        args = resolve_arguments(registry.lookup("bgp"), "192.0.2.0/24", config_lookup)
        assert args == ["-r", "sh", "ro", "all", "for", "192.0.2.0/24"]


class TestPlaceholders:
    """Tests for template token handling."""

    def test_explicit_target_placeholder_is_not_appended(self, config_lookup):
        op = OperationDescriptor(
            name="dig", command="dig", argument_template=("+short", "{target}", "A"),
            validation_classes={"hostname"},
        )
        assert resolve_arguments(op, "example.com", config_lookup) == ["+short", "example.com", "A"]

    def test_multiple_target_placeholders(self, config_lookup):
        op = OperationDescriptor(
            name="x", command="x", argument_template=("{target}", "--", "{target}"),
            validation_classes={"hostname"},
        )
        assert resolve_arguments(op, "h", config_lookup) == ["h", "--", "h"]

    def test_missing_config_key_resolves_to_empty_string(self):
        op = OperationDescriptor(
            name="x", command="x", argument_template=("-n", "{config:nope.missing}"),
            validation_classes={"ip"},
        )
        assert resolve_arguments(op, "192.0.2.1", lambda key: "") == ["-n", "", "192.0.2.1"]

    def test_config_lookup_receives_key(self):
        seen = []

        def lookup(key):
            seen.append(key)
            return "v"

        op = OperationDescriptor(
            name="x", command="x", argument_template=("{config:a.b}", "{config:c}"),
            validation_classes={"ip"},
        )
        resolve_arguments(op, "t", lookup)
        assert seen == ["a.b", "c"]

    def test_near_miss_tokens_stay_literal(self, config_lookup):
        op = OperationDescriptor(
            name="x", command="x",
            argument_template=("{Target}", "x{target}", "{config:}", "{viper:feature.ping.count}"),
            validation_classes={"ip"},
        )
        assert resolve_arguments(op, "t", config_lookup) == [
            "{Target}", "x{target}", "{config:}", "{viper:feature.ping.count}", "t",
        ]

    def test_config_values_are_not_reexpanded(self):
        op = OperationDescriptor(
            name="x", command="x", argument_template=("{config:k}",), validation_classes={"ip"},
        )
        assert resolve_arguments(op, "t", lambda key: "{target}") == ["{target}", "t"]

    def test_descriptor_template_never_mutated(self, registry, config_lookup):
        op = registry.lookup("ping")
        before = op.argument_template
        resolve_arguments(op, "192.0.2.1", config_lookup)
        resolve_arguments(op, "192.0.2.2", config_lookup)
        assert op.argument_template == before == ("-c", "{config:feature.ping.count}")


@pytest.mark.safety
class TestInjectionSafety:
    """The target is always exactly one argv element."""

    @pytest.mark.parametrize(
        "target",
        [
            "8.8.8.8; cat /etc/passwd",
            "example.com && id",
            "$(reboot)",
            "a b c",
            "'quoted' \"double\"",
            "host\nsecond-line",
        ],
    )
    def test_target_is_single_unmodified_token(self, registry, config_lookup, target):
        args = resolve_arguments(registry.lookup("traceroute"), target, config_lookup)
        assert args[-1] == target
        assert len(args) == len(registry.lookup("traceroute").argument_template) + 1

    def test_resolve_command_keeps_argv_separate(self, registry, config_lookup):
        command = resolve_command(registry.lookup("ping"), "x; id", lambda key: "1")
        assert command.executable == "ping"
        assert command.arguments == ("-c", "1", "x; id")
        assert command.argv == ["ping", "-c", "1", "x; id"]
