"""HTTP API for smoked."""

from smoked.api.app import create_app, build_dispatcher
from smoked.api.rate_limit import RateLimiter, client_ip

__all__ = ["create_app", "build_dispatcher", "RateLimiter", "client_ip"]
