# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024-2026 The Truth Prevails Contributors

"""
User accounts and their custodial wallets.

A wallet is generated exactly once, when the account is created (signup or
first federated sign-in), and is never replaced afterwards.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from truthprevails.auth.identity import Identity, TokenService
from truthprevails.context import AppContext
from truthprevails.shared.crypto import wallet as wallet_crypto
from truthprevails.shared.crypto.passwords import hash_password, verify_password
from truthprevails.shared.database.models import FileRecord, UserAccount, utcnow
from truthprevails.shared.errors import AuthenticationError, ConflictError, NotFoundError, Unavailable
from truthprevails.shared.models.schemas import ProfileUpdateRequest, SignupRequest

logger = logging.getLogger(__name__)


class AccountService:
    def __init__(self, ctx: AppContext):
        self.ctx = ctx
        self.database = ctx.database

    def _require_tokens(self) -> TokenService:
        if isinstance(self.ctx.tokens, Unavailable):
            raise self.ctx.tokens.error()
        return self.ctx.tokens

    def _require_secret(self) -> str:
        if isinstance(self.ctx.encryption_secret, Unavailable):
            raise self.ctx.encryption_secret.error()
        return self.ctx.encryption_secret

    def _new_wallet(self) -> Tuple[str, str]:
        """Generate a wallet and return (address, encrypted blob)."""
        secret = self._require_secret()
        info = wallet_crypto.generate()
        return info.address, wallet_crypto.encrypt(info, secret)

    async def find_by_uid(self, uid: str) -> Optional[UserAccount]:
        async with self.database.session() as db:
            return await db.get(UserAccount, uid)

    async def find_by_email(self, email: str) -> Optional[UserAccount]:
        async with self.database.session() as db:
            result = await db.execute(select(UserAccount).where(UserAccount.email == email.lower()))
            return result.scalar_one_or_none()

    async def signup(self, request: SignupRequest) -> UserAccount:
        """
        Create an email/password account with a fresh wallet.

        Raises:
            FeatureUnavailableError: If tokens or wallet encryption are not configured
            ConflictError: If the email is already registered
        """
        self._require_tokens()
        self._require_secret()

        if await self.find_by_email(request.email) is not None:
            raise ConflictError("User already exists")

        address, encrypted = self._new_wallet()
        user = UserAccount(
            name=request.name,
            email=request.email,
            password_hash=hash_password(request.password),
            wallet_address=address,
            encrypted_wallet=encrypted,
            provider="email",
        )
        await self._insert(user)
        logger.info(f"Created account {user.uid} with wallet {address}")
        return user

    async def _insert(self, user: UserAccount) -> None:
        try:
            async with self.database.session() as db:
                db.add(user)
        except IntegrityError as e:
            raise ConflictError("User already exists") from e

    async def login(self, email: str, password: str) -> Tuple[UserAccount, str]:
        tokens = self._require_tokens()
        user = await self.find_by_email(email)
        if user is None or not user.password_hash or not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid email or password")
        token = tokens.issue(user.uid, user.email, name=user.name, provider=user.provider)
        return user, token

    async def federated_sign_in(self, identity: Identity) -> Tuple[UserAccount, bool]:
        """
        Return the account for a federated identity, creating it on first sign-in.

        Returns:
            Tuple of (account, created)
        """
        existing = await self.find_by_uid(identity.uid)
        if existing is not None:
            return existing, False

        other = await self.find_by_email(identity.email)
        if other is not None:
            raise ConflictError("User already exists", details="Email is registered to another account")

        address, encrypted = self._new_wallet()
        user = UserAccount(
            uid=identity.uid,
            name=identity.name or identity.email.split("@")[0],
            email=identity.email,
            password_hash=None,
            wallet_address=address,
            encrypted_wallet=encrypted,
            provider=identity.provider if identity.provider != "email" else "federated",
        )
        await self._insert(user)
        logger.info(f"Created federated account {user.uid} with wallet {address}")
        return user, True

    async def update_profile(self, user: UserAccount, request: ProfileUpdateRequest) -> List[str]:
        updated: List[str] = []
        async with self.database.session() as db:
            account = await db.get(UserAccount, user.uid)
            if account is None:
                raise NotFoundError("User profile not found")
            if request.name is not None:
                account.name = request.name
                updated.append("name")
            account.updated_at = utcnow()
        return updated

    async def delete_account(self, user: UserAccount) -> int:
        """
        Delete an account and all of its file records.

        Stored objects are removed afterwards, best-effort.

        Returns:
            Number of file records removed
        """
        async with self.database.session() as db:
            result = await db.execute(
                select(FileRecord.storage_key).where(FileRecord.owner_id == user.uid)
            )
            keys = [key for key in result.scalars().all() if key]
            removed = await db.execute(delete(FileRecord).where(FileRecord.owner_id == user.uid))
            await db.execute(delete(UserAccount).where(UserAccount.uid == user.uid))

        store = self.ctx.object_store
        if not isinstance(store, Unavailable):
            for key in keys:
                try:
                    await store.delete(key)
                except Exception as e:
                    logger.warning(f"Failed to delete stored object {key}: {e}")

        logger.info(f"Deleted account {user.uid} and {removed.rowcount} file(s)")
        return removed.rowcount
