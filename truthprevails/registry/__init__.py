# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024-2026 The Truth Prevails Contributors

"""Hash registry backends."""

import logging
from typing import Union

from truthprevails.registry.base import (
    ZERO_ADDRESS,
    HashAlreadyRegisteredError,
    HashRegistry,
    InvalidHashError,
    RegistryError,
    RegistryRecord,
    RegistryStats,
    SubmissionReceipt,
)
from truthprevails.registry.ledger import LedgerRegistry
from truthprevails.shared.config import Settings
from truthprevails.shared.database.connection import Database
from truthprevails.shared.errors import Unavailable

logger = logging.getLogger(__name__)


def build_registry(settings: Settings, database: Database) -> Union[HashRegistry, Unavailable]:
    """
    Construct the configured registry backend.

    Missing Ethereum configuration disables the registry rather than failing
    startup.
    """
    if settings.registry_backend == "ledger":
        logger.info("Hash registry: database ledger")
        return LedgerRegistry(database)

    missing = [
        name
        for name, value in (("RPC_URL", settings.rpc_url), ("CONTRACT_ADDRESS", settings.contract_address))
        if not value
    ]
    if missing:
        reason = f"Missing configuration: {', '.join(missing)}"
        logger.warning(f"Hash registry disabled: {reason}")
        return Unavailable("Hash registry", reason)

    # Imported here so the ledger backend does not pay for loading web3
    from truthprevails.registry.ethereum import EthereumRegistry

    try:
        registry = EthereumRegistry(
            rpc_url=settings.rpc_url,
            contract_address=settings.contract_address,
            chain_id=settings.chain_id,
            rpc_timeout=settings.rpc_timeout_seconds,
            receipt_timeout=settings.tx_receipt_timeout_seconds,
        )
    except ValueError as e:
        logger.warning(f"Hash registry disabled: {e}")
        return Unavailable("Hash registry", str(e))

    logger.info(f"Hash registry: contract {settings.contract_address} on {settings.network}")
    return registry


__all__ = [
    "ZERO_ADDRESS",
    "HashAlreadyRegisteredError",
    "HashRegistry",
    "InvalidHashError",
    "LedgerRegistry",
    "RegistryError",
    "RegistryRecord",
    "RegistryStats",
    "SubmissionReceipt",
    "build_registry",
]
