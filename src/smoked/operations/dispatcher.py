"""Dispatcher - runs one looking-glass request end to end.

lookup → validate → resolve → execute → wrap. Every failure path ends in
a LookingGlassResponse; nothing raises past ``handle`` except task
cancellation.

Usage:
    from smoked.operations import Dispatcher, ProcessExecutor, build_registry

    dispatcher = Dispatcher(
        registry=build_registry(feature_enabled=settings.feature_enabled),
        executor=ProcessExecutor(),
        config_lookup=settings.lookup,
    )
    response = await dispatcher.handle(LookingGlassRequest("ping", "192.0.2.1"))
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional, Union

import structlog

from smoked.core.exceptions import (
    InvalidTargetError,
    OperationNotFoundError,
    RequestDecodeError,
)
from smoked.core.models import LookingGlassRequest, LookingGlassResponse
from smoked.operations.arguments import resolve_command
from smoked.operations.registry import OperationDescriptor, OperationRegistry
from smoked.operations.validation import TargetValidator
from smoked.protocols import ConfigLookup, ExecutorProtocol

log = structlog.get_logger(__name__)

INVALID_TYPE = "Invalid type"
INVALID_TARGET = "Invalid target"


class Dispatcher:
    """Orchestrates registry, validator, resolver and executor.

    Holds no per-request state; one instance serves all concurrent
    requests.
    """

    def __init__(
        self,
        registry: OperationRegistry,
        executor: ExecutorProtocol,
        config_lookup: ConfigLookup,
        validator: Optional[TargetValidator] = None,
    ) -> None:
        self._registry = registry
        self._executor = executor
        self._config_lookup = config_lookup
        self._validator = validator or TargetValidator()

    @property
    def registry(self) -> OperationRegistry:
        return self._registry

    def select(self, request: LookingGlassRequest) -> OperationDescriptor:
        """Return the descriptor for an admissible request.

        Raises:
            OperationNotFoundError: Unknown or disabled operation type.
            InvalidTargetError: Target fails every validation class.
        """
        descriptor = self._registry.lookup(request.type)
        if descriptor is None:
            raise OperationNotFoundError(request.type)

        if not self._validator.is_valid(request.target, descriptor.validation_classes):
            raise InvalidTargetError(
                operation=descriptor.name,
                target=request.target,
                validation_classes=sorted(descriptor.validation_classes),
            )
        return descriptor

    async def handle(self, request: LookingGlassRequest) -> LookingGlassResponse:
        """Handle one request.

        Args:
            request: Decoded client request.

        Returns:
            LookingGlassResponse with exactly one of error/data set.
        """
        try:
            descriptor = self.select(request)
        except OperationNotFoundError as e:
            log.info("operation_rejected", **e.context)
            return LookingGlassResponse.fail(INVALID_TYPE)
        except InvalidTargetError as e:
            log.info("target_rejected", **e.context)
            return LookingGlassResponse.fail(INVALID_TARGET)

        try:
            command = resolve_command(descriptor, request.target, self._config_lookup)
            log.info(
                "operation_dispatched",
                operation=descriptor.name,
                target=request.target,
                argv=command.argv,
            )
            result = await self._executor.execute(command.executable, command.arguments)
        except asyncio.CancelledError:
            log.info("operation_cancelled", operation=descriptor.name, target=request.target)
            raise
        except Exception as e:
            log.exception("operation_crashed", operation=descriptor.name, error=str(e))
            return LookingGlassResponse.fail(str(e) or type(e).__name__)

        if not result.success:
            log.info(
                "operation_failed",
                operation=descriptor.name,
                error=result.error,
                error_type=result.error_type,
                duration_ms=result.duration_ms,
            )
            return LookingGlassResponse.fail(result.error or "")

        log.info(
            "operation_completed",
            operation=descriptor.name,
            duration_ms=result.duration_ms,
            bytes=len(result.output),
        )
        return LookingGlassResponse.ok(result.text)

    async def handle_payload(
        self, payload: Union[str, bytes, dict[str, Any]]
    ) -> LookingGlassResponse:
        """Decode a raw request payload and handle it.

        Undecodable payloads yield ``{"error": <decode error text>}``.
        """
        try:
            request = LookingGlassRequest.from_json(payload)
        except RequestDecodeError as e:
            log.info("request_decode_failed", error=e.message)
            return LookingGlassResponse.fail(e.message)
        return await self.handle(request)
