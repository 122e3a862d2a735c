# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024-2026 The Truth Prevails Contributors

"""
Custodial wallet generation and storage encryption.

Each account gets one Ethereum key pair derived from a random 24-word BIP-39
mnemonic at the standard path m/44'/60'/0'/0/0. The key signs registry
submissions on the user's behalf.

Stored wallets are AES-256-CBC encrypted under a deployment-wide secret using
the OpenSSL passphrase format ("Salted__" || salt || ciphertext, base64, key
and IV from EVP_BytesToKey with MD5). This keeps the private key out of the
data store in the clear; it does not protect against compromise of the
server or of the secret itself.
"""

import base64
import binascii
import json
import os
from dataclasses import dataclass
from typing import Tuple

from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from eth_account import Account

DERIVATION_PATH = "m/44'/60'/0'/0/0"
MNEMONIC_WORDS = 24

_SALT_MAGIC = b"Salted__"

Account.enable_unaudited_hdwallet_features()


class WalletGenerationError(Exception):
    """Key derivation produced no usable key material."""


class WalletDecryptionError(Exception):
    """Encrypted wallet could not be decrypted (wrong secret or corrupt blob)."""


@dataclass(frozen=True)
class WalletInfo:
    """Derived wallet: checksum address, hex private key and mnemonic."""

    address: str
    private_key: str
    mnemonic: str

    def to_dict(self) -> dict:
        return {
            "address": self.address,
            "privateKey": self.private_key,
            "mnemonic": self.mnemonic,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WalletInfo":
        try:
            return cls(
                address=data["address"],
                private_key=data["privateKey"],
                mnemonic=data["mnemonic"],
            )
        except (KeyError, TypeError) as e:
            raise WalletDecryptionError(f"Wallet payload is missing fields: {e}") from e


def generate() -> WalletInfo:
    """
    Generate a fresh wallet from a random 24-word mnemonic.

    Returns:
        WalletInfo with a 0x-prefixed private key

    Raises:
        WalletGenerationError: If derivation yields an empty key
    """
    account, mnemonic = Account.create_with_mnemonic(
        num_words=MNEMONIC_WORDS,
        account_path=DERIVATION_PATH,
    )
    key_bytes = bytes(account.key)
    if not key_bytes or not any(key_bytes):
        raise WalletGenerationError("Failed to generate valid private key")

    return WalletInfo(
        address=account.address,
        private_key="0x" + key_bytes.hex(),
        mnemonic=mnemonic,
    )


def address_for_key(private_key: str) -> str:
    """Checksum address controlled by a private key."""
    return Account.from_key(private_key).address


def _evp_bytes_to_key(secret: bytes, salt: bytes, key_len: int = 32, iv_len: int = 16) -> Tuple[bytes, bytes]:
    """OpenSSL EVP_BytesToKey with MD5 and one iteration."""
    derived = b""
    block = b""
    while len(derived) < key_len + iv_len:
        digest = hashes.Hash(hashes.MD5())
        digest.update(block + secret + salt)
        block = digest.finalize()
        derived += block
    return derived[:key_len], derived[key_len:key_len + iv_len]


def encrypt(wallet: WalletInfo, secret: str) -> str:
    """
    Serialize and encrypt a wallet for storage.

    Args:
        wallet: Wallet to protect
        secret: Deployment-wide encryption secret

    Returns:
        Base64 blob in OpenSSL "Salted__" format
    """
    plaintext = json.dumps(wallet.to_dict(), separators=(",", ":")).encode("utf-8")
    salt = os.urandom(8)
    key, iv = _evp_bytes_to_key(secret.encode("utf-8"), salt)

    padder = padding.PKCS7(128).padder()
    padded = padder.update(plaintext) + padder.finalize()

    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()

    return base64.b64encode(_SALT_MAGIC + salt + ciphertext).decode("ascii")


def decrypt(blob: str, secret: str) -> WalletInfo:
    """
    Decrypt a stored wallet.

    Raises:
        WalletDecryptionError: If the secret is wrong or the blob is malformed
    """
    try:
        raw = base64.b64decode(blob, validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        raise WalletDecryptionError(f"Encrypted wallet is not valid base64: {e}") from e

    if len(raw) < 32 or not raw.startswith(_SALT_MAGIC) or (len(raw) - 16) % 16:
        raise WalletDecryptionError("Encrypted wallet has an unexpected layout")

    salt, ciphertext = raw[8:16], raw[16:]
    key, iv = _evp_bytes_to_key(secret.encode("utf-8"), salt)

    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()

    try:
        unpadder = padding.PKCS7(128).unpadder()
        plaintext = unpadder.update(padded) + unpadder.finalize()
        data = json.loads(plaintext.decode("utf-8"))
    except (ValueError, UnicodeDecodeError) as e:
        raise WalletDecryptionError("Failed to decrypt wallet") from e

    if not isinstance(data, dict):
        raise WalletDecryptionError("Decrypted wallet is not an object")
    return WalletInfo.from_dict(data)
