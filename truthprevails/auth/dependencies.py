# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024-2026 The Truth Prevails Contributors

"""FastAPI dependencies resolving the bearer token to an identity or account."""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from truthprevails.auth.identity import Identity
from truthprevails.context import AppContext, get_context
from truthprevails.services.accounts import AccountService
from truthprevails.shared.database.models import UserAccount
from truthprevails.shared.errors import AuthenticationError, Unavailable

bearer = HTTPBearer(auto_error=False)


def get_identity(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    ctx: AppContext = Depends(get_context),
) -> Identity:
    if isinstance(ctx.tokens, Unavailable):
        raise ctx.tokens.error()
    if creds is None or not creds.credentials:
        raise AuthenticationError("No token provided")
    return ctx.tokens.decode(creds.credentials)


async def get_current_user(
    identity: Identity = Depends(get_identity),
    ctx: AppContext = Depends(get_context),
) -> UserAccount:
    user = await AccountService(ctx).find_by_uid(identity.uid)
    if user is None:
        raise AuthenticationError("Account not found", details="Sign in again to create your account")
    return user
