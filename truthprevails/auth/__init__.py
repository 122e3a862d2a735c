"""Bearer token identity."""

from .identity import Identity, TokenService, build_token_service

__all__ = ["Identity", "TokenService", "build_token_service"]
