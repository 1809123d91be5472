"""Core module for smoked.

Exports the core components: exceptions, data models, and configuration.
"""

from smoked.core.exceptions import (
    SmokedError,
    ConfigurationError,
    RequestDecodeError,
    OperationNotFoundError,
    InvalidTargetError,
)
from smoked.core.models import (
    LookingGlassRequest,
    LookingGlassResponse,
    ResolvedCommand,
    ExecutionResult,
)
from smoked.core.config import (
    get_settings,
    reset_settings,
    create_settings,
    Settings,
    ServerConfig,
    RateConfig,
    CorsConfig,
    FeatureConfig,
    FeatureToggle,
    PingFeature,
    FilesFeature,
    ExecutorConfig,
    LoggingConfig,
)

__all__ = [
    # Exceptions
    "SmokedError",
    "ConfigurationError",
    "RequestDecodeError",
    "OperationNotFoundError",
    "InvalidTargetError",
    # Data Models
    "LookingGlassRequest",
    "LookingGlassResponse",
    "ResolvedCommand",
    "ExecutionResult",
    # Configuration
    "get_settings",
    "reset_settings",
    "create_settings",
    "Settings",
    "ServerConfig",
    "RateConfig",
    "CorsConfig",
    "FeatureConfig",
    "FeatureToggle",
    "PingFeature",
    "FilesFeature",
    "ExecutorConfig",
    "LoggingConfig",
]
