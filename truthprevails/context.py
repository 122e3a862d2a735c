# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024-2026 The Truth Prevails Contributors

"""
Application context.

Every collaborator is built once per application and held here. A
collaborator whose configuration is missing is stored as ``Unavailable`` and
the routes that need it answer 503; the rest of the API keeps working.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from fastapi import Request

from truthprevails.auth.identity import TokenService, build_token_service
from truthprevails.registry import HashRegistry, build_registry
from truthprevails.shared.config import Settings
from truthprevails.shared.database.connection import Database
from truthprevails.shared.errors import Unavailable
from truthprevails.storage.object_store import S3ObjectStore, build_object_store

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    database: Database
    registry: Union[HashRegistry, Unavailable]
    object_store: Union[S3ObjectStore, Unavailable]
    tokens: Union[TokenService, Unavailable]
    encryption_secret: Union[str, Unavailable]

    @classmethod
    def from_settings(cls, settings: Settings, database: Optional[Database] = None) -> "AppContext":
        database = database or Database.from_settings(settings)
        if settings.encryption_secret:
            encryption_secret: Union[str, Unavailable] = settings.encryption_secret
        else:
            logger.warning("Wallet creation disabled: ENCRYPTION_SECRET is not set")
            encryption_secret = Unavailable("Wallet encryption", "Missing configuration: ENCRYPTION_SECRET")

        return cls(
            settings=settings,
            database=database,
            registry=build_registry(settings, database),
            object_store=build_object_store(settings),
            tokens=build_token_service(settings),
            encryption_secret=encryption_secret,
        )

    def feature_status(self) -> dict:
        """Availability of each optional collaborator, for the status endpoint."""

        def describe(value, backend: Optional[str] = None) -> dict:
            if isinstance(value, Unavailable):
                return {"available": False, "reason": value.reason}
            return {"available": True, "backend": backend}

        registry_backend = None if isinstance(self.registry, Unavailable) else self.registry.backend
        return {
            "registry": describe(self.registry, registry_backend),
            "objectStorage": describe(self.object_store, "s3"),
            "authentication": describe(self.tokens, "jwt"),
            "walletEncryption": describe(self.encryption_secret),
        }

    async def close(self) -> None:
        if not isinstance(self.registry, Unavailable):
            await self.registry.close()
        await self.database.dispose()


def get_context(request: Request) -> AppContext:
    return request.app.state.context
