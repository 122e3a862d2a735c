# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024-2026 The Truth Prevails Contributors

"""ABI of the deployed TruthProof registry contract."""

from typing import Optional


def _param(name: str, type_: str, indexed: Optional[bool] = None) -> dict:
    param = {"internalType": type_, "name": name, "type": type_}
    if indexed is not None:
        param["indexed"] = indexed
    return param


def _function(name: str, inputs: list, outputs: list, mutability: str = "view") -> dict:
    return {
        "inputs": inputs,
        "name": name,
        "outputs": outputs,
        "stateMutability": mutability,
        "type": "function",
    }


def _event(name: str) -> dict:
    return {
        "anonymous": False,
        "inputs": [
            _param("hash", "bytes32", indexed=True),
            _param("submitter", "address", indexed=True),
            _param("timestamp", "uint256", indexed=False),
        ],
        "name": name,
        "type": "event",
    }


TRUTH_PROOF_ABI = [
    _event("HashSubmitted"),
    _event("HashVerified"),
    _function("submitHash", [_param("_hash", "bytes32")], [], mutability="nonpayable"),
    _function(
        "verifyHash",
        [_param("_hash", "bytes32")],
        [
            _param("exists", "bool"),
            _param("submitter", "address"),
            _param("timestamp", "uint256"),
        ],
    ),
    _function("getAllHashes", [], [_param("", "bytes32[]")]),
    _function("getHashesBySubmitter", [_param("_submitter", "address")], [_param("", "bytes32[]")]),
    _function("getRecentHashes", [_param("_count", "uint256")], [_param("", "bytes32[]")]),
    _function("getTotalHashes", [], [_param("", "uint256")]),
    _function("hasSubmittedHashes", [_param("_submitter", "address")], [_param("", "bool")]),
    _function(
        "getContractStats",
        [],
        [_param("totalHashes", "uint256"), _param("contractCreationTime", "uint256")],
    ),
]
