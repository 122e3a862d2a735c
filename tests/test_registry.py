"""Tests for the hash registry backends."""

import time
from unittest.mock import MagicMock

import pytest
from eth_account import Account
from sqlalchemy import event
from web3 import Web3
from web3.exceptions import ContractLogicError

from truthprevails.registry import build_registry
from truthprevails.registry.base import (
    ZERO_ADDRESS,
    HashAlreadyRegisteredError,
    InvalidHashError,
    RegistryError,
)
from truthprevails.registry.ethereum import EthereumRegistry
from truthprevails.registry.ledger import LedgerRegistry, compute_transaction_hash
from truthprevails.shared.crypto import wallet
from truthprevails.shared.crypto.hashing import ZERO_HASH, sha256_hex, to_bytes32
from truthprevails.shared.errors import Unavailable

from conftest import make_settings

CONTRACT_ADDRESS = "0x" + "ab" * 20


def _hashes(n):
    return [sha256_hex(f"file-{i}".encode()) for i in range(n)]


@pytest.fixture
def ledger(database):
    return LedgerRegistry(database)


@pytest.fixture
def signer():
    return wallet.generate()


class TestLedgerRegistry:
    async def test_submit_and_verify(self, ledger, signer):
        content_hash = sha256_hex(b"hello")
        before = int(time.time())

        receipt = await ledger.submit_hash(content_hash, signer.private_key)
        record = await ledger.verify_hash(content_hash)

        assert receipt.submitter == signer.address
        assert receipt.tx_hash.startswith("0x") and len(receipt.tx_hash) == 66
        assert record.exists
        assert record.submitter == signer.address
        assert record.timestamp >= before

    async def test_transaction_hash_is_deterministic(self):
        a = compute_transaction_hash("a" * 64, "0xABC", 1700000000)
        b = compute_transaction_hash("a" * 64, "0xabc", 1700000000)
        assert a == b
        assert a != compute_transaction_hash("a" * 64, "0xabc", 1700000001)

    async def test_duplicate_submission_rejected(self, ledger, signer):
        content_hash = sha256_hex(b"hello")
        await ledger.submit_hash(content_hash, signer.private_key)

        with pytest.raises(HashAlreadyRegisteredError):
            await ledger.submit_hash(content_hash, signer.private_key)

        # A different submitter cannot claim it either; the first submitter keeps it
        other = wallet.generate()
        with pytest.raises(HashAlreadyRegisteredError):
            await ledger.submit_hash(content_hash, other.private_key)
        assert (await ledger.verify_hash(content_hash)).submitter == signer.address

    async def test_zero_hash_rejected(self, ledger, signer):
        with pytest.raises(InvalidHashError):
            await ledger.submit_hash(ZERO_HASH, signer.private_key)
        assert await ledger.get_total_hashes() == 0

    async def test_malformed_hash_rejected(self, ledger, signer):
        with pytest.raises(InvalidHashError):
            await ledger.submit_hash("abc", signer.private_key)

    async def test_verify_unknown_hash_is_total(self, ledger):
        record = await ledger.verify_hash(sha256_hex(b"never submitted"))

        assert not record.exists
        assert record.submitter == ZERO_ADDRESS
        assert record.timestamp == 0

        # Malformed input is simply absent
        assert not (await ledger.verify_hash("not-a-hash")).exists

    async def test_verify_is_idempotent(self, ledger, signer):
        content_hash = sha256_hex(b"hello")
        await ledger.submit_hash(content_hash, signer.private_key)

        assert await ledger.verify_hash(content_hash) == await ledger.verify_hash(content_hash)

    async def test_verify_accepts_prefixed_hash(self, ledger, signer):
        content_hash = sha256_hex(b"hello")
        await ledger.submit_hash(content_hash, signer.private_key)

        assert (await ledger.verify_hash("0x" + content_hash.upper())).exists

    async def test_recent_hashes_window(self, ledger, signer):
        hashes = _hashes(5)
        for h in hashes:
            await ledger.submit_hash(h, signer.private_key)

        assert await ledger.get_recent_hashes(3) == hashes[2:]
        assert await ledger.get_recent_hashes(10) == hashes
        assert await ledger.get_recent_hashes(0) == []
        assert await ledger.get_recent_hashes(-1) == []

    async def test_enumeration(self, ledger, signer):
        other = wallet.generate()
        mine, theirs = _hashes(3), [sha256_hex(b"theirs")]
        for h in mine:
            await ledger.submit_hash(h, signer.private_key)
        await ledger.submit_hash(theirs[0], other.private_key)

        assert await ledger.get_all_hashes() == mine + theirs
        assert await ledger.get_hashes_by_submitter(signer.address) == mine
        assert await ledger.get_hashes_by_submitter(signer.address.lower()) == mine
        assert await ledger.get_total_hashes() == 4
        assert await ledger.has_submitted_hashes(other.address)
        assert not await ledger.has_submitted_hashes(ZERO_ADDRESS)

    async def test_submitter_lookup_is_exact_match(self, ledger, signer, database):
        content_hash = sha256_hex(b"one")
        await ledger.submit_hash(content_hash, signer.private_key)
        statements = []

        def record(conn, cursor, statement, parameters, context, executemany):
            statements.append(statement.lower())

        event.listen(database.engine.sync_engine, "before_cursor_execute", record)
        try:
            upper = "0x" + signer.address[2:].upper()
            assert await ledger.get_hashes_by_submitter(upper) == [content_hash]
        finally:
            event.remove(database.engine.sync_engine, "before_cursor_execute", record)

        assert statements
        assert not any("lower(" in s for s in statements)

    async def test_malformed_submitter(self, ledger, signer):
        await ledger.submit_hash(sha256_hex(b"one"), signer.private_key)

        assert await ledger.get_hashes_by_submitter("not-an-address") == []
        assert not await ledger.has_submitted_hashes("0x1234")

    async def test_stats(self, ledger, signer):
        assert (await ledger.get_stats()).total_hashes == 0

        await ledger.submit_hash(sha256_hex(b"one"), signer.private_key)
        stats = await ledger.get_stats()

        assert stats.total_hashes == 1
        assert stats.created_at is not None


@pytest.fixture
def web3_mock():
    w3 = MagicMock()
    w3.eth.get_transaction_count.return_value = 7
    w3.eth.send_raw_transaction.return_value = b"\x12" * 32
    w3.eth.wait_for_transaction_receipt.return_value = {"status": 1, "blockNumber": 42}
    w3.eth.get_block.return_value = {"timestamp": 1700000000}
    return w3


@pytest.fixture
def contract(web3_mock):
    contract = web3_mock.eth.contract.return_value
    contract.functions.verifyHash.return_value.call.return_value = (False, ZERO_ADDRESS, 0)
    contract.functions.submitHash.return_value.build_transaction.side_effect = lambda params: {
        "to": Web3.to_checksum_address(CONTRACT_ADDRESS),
        "data": "0x",
        "value": 0,
        "gas": 100000,
        "gasPrice": 10**9,
        "nonce": params["nonce"],
        "chainId": params["chainId"],
    }
    return contract


@pytest.fixture
def eth_registry(web3_mock, contract):
    return EthereumRegistry(
        rpc_url="http://rpc.test",
        contract_address=CONTRACT_ADDRESS,
        chain_id=11155111,
        rpc_timeout=1.0,
        receipt_timeout=5.0,
        web3=web3_mock,
    )


class TestEthereumRegistry:
    async def test_submit_signs_with_user_key(self, eth_registry, web3_mock, contract, signer):
        content_hash = sha256_hex(b"hello")

        receipt = await eth_registry.submit_hash(content_hash, signer.private_key)

        assert receipt.tx_hash == "0x" + "12" * 32
        assert receipt.submitter == signer.address
        assert receipt.timestamp == 1700000000
        assert receipt.block_number == 42

        contract.functions.submitHash.assert_called_with(to_bytes32(content_hash))
        params = contract.functions.submitHash.return_value.build_transaction.call_args[0][0]
        assert params["from"] == signer.address
        assert params["nonce"] == 7
        assert params["chainId"] == 11155111
        web3_mock.eth.get_transaction_count.assert_called_with(signer.address, "pending")

        raw = web3_mock.eth.send_raw_transaction.call_args[0][0]
        assert Account.recover_transaction(raw) == signer.address

    async def test_existing_hash_is_not_resubmitted(self, eth_registry, web3_mock, contract, signer):
        contract.functions.verifyHash.return_value.call.return_value = (True, signer.address, 1700000000)

        with pytest.raises(HashAlreadyRegisteredError):
            await eth_registry.submit_hash(sha256_hex(b"hello"), signer.private_key)
        web3_mock.eth.send_raw_transaction.assert_not_called()

    async def test_zero_hash_rejected_locally(self, eth_registry, web3_mock, signer):
        with pytest.raises(InvalidHashError):
            await eth_registry.submit_hash(ZERO_HASH, signer.private_key)
        web3_mock.eth.send_raw_transaction.assert_not_called()

    async def test_revert_reason_is_mapped(self, eth_registry, web3_mock, signer):
        web3_mock.eth.send_raw_transaction.side_effect = ContractLogicError(
            "execution reverted: Hash already exists"
        )

        with pytest.raises(HashAlreadyRegisteredError):
            await eth_registry.submit_hash(sha256_hex(b"hello"), signer.private_key)

    async def test_failed_receipt(self, eth_registry, web3_mock, signer):
        web3_mock.eth.wait_for_transaction_receipt.return_value = {"status": 0, "blockNumber": 42}

        with pytest.raises(RegistryError, match="reverted"):
            await eth_registry.submit_hash(sha256_hex(b"hello"), signer.private_key)

    async def test_node_errors_become_registry_errors(self, eth_registry, contract):
        contract.functions.verifyHash.return_value.call.side_effect = ConnectionError("refused")

        with pytest.raises(RegistryError):
            await eth_registry.verify_hash(sha256_hex(b"hello"))

    async def test_verify(self, eth_registry, contract, signer):
        contract.functions.verifyHash.return_value.call.return_value = (True, signer.address, 1700000000)

        record = await eth_registry.verify_hash(sha256_hex(b"hello"))

        assert record.exists
        assert record.submitter == signer.address
        assert record.timestamp == 1700000000

    async def test_verify_absent(self, eth_registry, contract):
        record = await eth_registry.verify_hash(sha256_hex(b"hello"))

        assert not record.exists
        assert record.submitter == ZERO_ADDRESS
        assert not (await eth_registry.verify_hash("bogus")).exists

    async def test_enumeration_decodes_bytes32(self, eth_registry, contract):
        hashes = _hashes(3)
        contract.functions.getRecentHashes.return_value.call.return_value = [to_bytes32(h) for h in hashes]
        contract.functions.getTotalHashes.return_value.call.return_value = 3
        contract.functions.getContractStats.return_value.call.return_value = (3, 1690000000)

        assert await eth_registry.get_recent_hashes(3) == hashes
        assert await eth_registry.get_recent_hashes(0) == []
        assert await eth_registry.get_total_hashes() == 3
        stats = await eth_registry.get_stats()
        assert (stats.total_hashes, stats.created_at) == (3, 1690000000)


class TestBuildRegistry:
    def test_ledger_backend(self, database):
        registry = build_registry(make_settings(), database)
        assert isinstance(registry, LedgerRegistry)

    def test_ethereum_without_configuration_is_unavailable(self, database):
        registry = build_registry(make_settings(registry_backend="ethereum"), database)

        assert isinstance(registry, Unavailable)
        assert "RPC_URL" in registry.reason
        assert "CONTRACT_ADDRESS" in registry.reason
        assert registry.error().status_code == 503

    def test_ethereum_backend(self, database):
        registry = build_registry(
            make_settings(
                registry_backend="ethereum",
                rpc_url="http://127.0.0.1:8545",
                contract_address=CONTRACT_ADDRESS,
            ),
            database,
        )
        assert isinstance(registry, EthereumRegistry)
