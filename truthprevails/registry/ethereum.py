# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024-2026 The Truth Prevails Contributors

"""
Hash registry client for the TruthProof contract on an EVM chain.

Each submission is a transaction signed with the submitting user's custodial
key. web3's HTTP provider is synchronous, so calls run in a worker thread
with a request timeout on the provider and an overall bound on each
operation.
"""

import asyncio
import logging
from typing import Any, Callable, List, Optional

from eth_account import Account
from web3 import Web3
from web3.exceptions import ContractLogicError

from truthprevails.registry.abi import TRUTH_PROOF_ABI
from truthprevails.registry.base import (
    HashAlreadyRegisteredError,
    HashRegistry,
    InvalidHashError,
    RegistryError,
    RegistryRecord,
    RegistryStats,
    SubmissionReceipt,
)
from truthprevails.shared.crypto.hashing import ZERO_HASH, from_bytes32, normalize_hash, to_bytes32

logger = logging.getLogger(__name__)


class EthereumRegistry(HashRegistry):
    """Registry backed by a deployed TruthProof contract reached over JSON-RPC."""

    backend = "ethereum"

    def __init__(
        self,
        rpc_url: str,
        contract_address: str,
        chain_id: Optional[int] = None,
        rpc_timeout: float = 15.0,
        receipt_timeout: float = 120.0,
        web3: Optional[Web3] = None,
    ):
        """
        Initialize the contract binding.

        Args:
            rpc_url: JSON-RPC endpoint URL
            contract_address: Deployed TruthProof address
            chain_id: Chain ID for signing (queried from the node if omitted)
            rpc_timeout: Per-request timeout in seconds
            receipt_timeout: How long to wait for a transaction to be mined
            web3: Pre-built Web3 instance (tests)
        """
        self.rpc_url = rpc_url
        self.rpc_timeout = rpc_timeout
        self.receipt_timeout = receipt_timeout
        self.chain_id = chain_id
        self.w3 = web3 or Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": rpc_timeout}))
        self.contract = self.w3.eth.contract(
            address=Web3.to_checksum_address(contract_address),
            abi=TRUTH_PROOF_ABI,
        )

    async def _run(self, fn: Callable[..., Any], *args: Any, timeout: Optional[float] = None) -> Any:
        """Run a blocking web3 call off the event loop, mapping failures to RegistryError."""
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(fn, *args),
                timeout=timeout or self.rpc_timeout * 2,
            )
        except asyncio.TimeoutError as e:
            raise RegistryError(f"Blockchain node timeout ({self.rpc_url})") from e
        except RegistryError:
            raise
        except ContractLogicError as e:
            raise _map_revert(e, args) from e
        except Exception as e:
            raise RegistryError(f"Blockchain call failed: {e}") from e

    async def submit_hash(self, content_hash: str, signer_private_key: str) -> SubmissionReceipt:
        try:
            content_hash = normalize_hash(content_hash)
        except ValueError as e:
            raise InvalidHashError(str(e)) from e
        if content_hash == ZERO_HASH:
            raise InvalidHashError("Invalid hash")

        # Refuse duplicates before paying for a transaction that would revert
        existing = await self.verify_hash(content_hash)
        if existing.exists:
            raise HashAlreadyRegisteredError(content_hash)

        timeout = self.receipt_timeout + self.rpc_timeout * 4
        receipt = await self._run(self._submit_sync, content_hash, signer_private_key, timeout=timeout)
        logger.info(
            f"Hash {content_hash[:16]}... submitted on-chain: tx={receipt.tx_hash}, "
            f"block={receipt.block_number}"
        )
        return receipt

    def _submit_sync(self, content_hash: str, signer_private_key: str) -> SubmissionReceipt:
        account = Account.from_key(signer_private_key)
        chain_id = self.chain_id or self.w3.eth.chain_id

        tx = self.contract.functions.submitHash(to_bytes32(content_hash)).build_transaction(
            {
                "from": account.address,
                "nonce": self.w3.eth.get_transaction_count(account.address, "pending"),
                "chainId": chain_id,
            }
        )
        signed = account.sign_transaction(tx)
        tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)

        if receipt["status"] != 1:
            raise RegistryError(f"Transaction {Web3.to_hex(tx_hash)} reverted")

        block = self.w3.eth.get_block(receipt["blockNumber"])
        return SubmissionReceipt(
            content_hash=content_hash,
            submitter=account.address,
            timestamp=int(block["timestamp"]),
            tx_hash=Web3.to_hex(tx_hash),
            block_number=receipt["blockNumber"],
        )

    async def verify_hash(self, content_hash: str) -> RegistryRecord:
        try:
            hash32 = to_bytes32(content_hash)
        except ValueError:
            return RegistryRecord.absent()

        exists, submitter, timestamp = await self._run(
            self.contract.functions.verifyHash(hash32).call
        )
        if not exists:
            return RegistryRecord.absent()
        return RegistryRecord(exists=True, submitter=submitter, timestamp=int(timestamp))

    async def get_all_hashes(self) -> List[str]:
        values = await self._run(self.contract.functions.getAllHashes().call)
        return [from_bytes32(v) for v in values]

    async def get_hashes_by_submitter(self, submitter: str) -> List[str]:
        address = Web3.to_checksum_address(submitter)
        values = await self._run(self.contract.functions.getHashesBySubmitter(address).call)
        return [from_bytes32(v) for v in values]

    async def get_recent_hashes(self, count: int) -> List[str]:
        if count <= 0:
            return []
        values = await self._run(self.contract.functions.getRecentHashes(count).call)
        return [from_bytes32(v) for v in values]

    async def get_total_hashes(self) -> int:
        return int(await self._run(self.contract.functions.getTotalHashes().call))

    async def has_submitted_hashes(self, submitter: str) -> bool:
        address = Web3.to_checksum_address(submitter)
        return bool(await self._run(self.contract.functions.hasSubmittedHashes(address).call))

    async def get_stats(self) -> RegistryStats:
        total, created_at = await self._run(self.contract.functions.getContractStats().call)
        return RegistryStats(total_hashes=int(total), created_at=int(created_at))


def _map_revert(error: ContractLogicError, args: tuple) -> RegistryError:
    """Translate a contract revert reason into a registry error."""
    reason = str(error)
    content_hash = args[0] if args and isinstance(args[0], str) else ""
    if "already exists" in reason:
        return HashAlreadyRegisteredError(content_hash)
    if "Invalid hash" in reason:
        return InvalidHashError("Invalid hash")
    return RegistryError(f"Contract reverted: {reason}")
