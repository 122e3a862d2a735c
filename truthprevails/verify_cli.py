#!/usr/bin/env python3
# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024-2026 The Truth Prevails Contributors

"""
Quick script to verify a file or hash against a running Truth Prevails API.
Usage: truth-prevails-verify <file-or-hash> [--api http://localhost:3001]
"""

import argparse
import sys
from pathlib import Path

import requests

from truthprevails.shared.crypto.hashing import normalize_hash, sha256_file

DEFAULT_API = "http://localhost:3001"


def resolve_hash(target: str) -> str:
    """Hash of a local file, or the argument itself when it is already a hash."""
    path = Path(target)
    if path.is_file():
        return sha256_file(path)
    return normalize_hash(target)


def verify(content_hash: str, api_url: str = DEFAULT_API, timeout: float = 10.0) -> dict:
    response = requests.post(
        f"{api_url.rstrip('/')}/api/verification/verify",
        json={"hash": content_hash},
        timeout=timeout,
    )
    response.raise_for_status()
    return response.json()["verification"]


def print_result(result: dict) -> None:
    if result.get("exists"):
        print("VERIFIED in registry")
        print(f"   Hash: {result['hash']}")
        print(f"   Submitter: {result['submitter']}")
        print(f"   Timestamp: {result['timestamp']}")
        if result.get("transactionUrl"):
            print(f"   Transaction: {result['transactionUrl']}")
        metadata = result.get("fileMetadata")
        if metadata:
            print(f"   File: {metadata['fileName']} ({metadata['fileSize']} bytes, {metadata['fileType']})")
    else:
        print("NOT VERIFIED - hash not found in registry")
        print(f"   Hash: {result['hash']}")
        if result.get("registryAvailable") is False:
            print("   (registry is not configured on this server)")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Verify a file or SHA-256 hash")
    parser.add_argument("target", help="Path to a file, or a 64-character hex hash")
    parser.add_argument("--api", default=DEFAULT_API, help=f"API base URL (default: {DEFAULT_API})")
    args = parser.parse_args(argv)

    try:
        content_hash = resolve_hash(args.target)
    except ValueError as e:
        print(f"Error: {e}")
        return 2

    try:
        result = verify(content_hash, args.api)
    except requests.ConnectionError:
        print(f"Cannot connect to API at {args.api}")
        print("   Make sure the Truth Prevails API is running")
        return 1
    except requests.RequestException as e:
        print(f"Error: {e}")
        return 1

    print_result(result)
    return 0 if result.get("exists") else 3


if __name__ == "__main__":
    sys.exit(main())
