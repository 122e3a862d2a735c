# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024-2026 The Truth Prevails Contributors

"""Account endpoints: signup, login, federated sign-in and profile."""

import logging

from fastapi import APIRouter, Depends, Response, status

from truthprevails.auth.dependencies import get_current_user, get_identity
from truthprevails.auth.identity import Identity
from truthprevails.context import AppContext, get_context
from truthprevails.services.accounts import AccountService
from truthprevails.shared.database.models import UserAccount
from truthprevails.shared.models.schemas import (
    LoginRequest,
    MessageResponse,
    ProfileUpdateRequest,
    SignupRequest,
    TokenResponse,
    UpdatedFieldsResponse,
    UserOut,
    UserResponse,
    WalletResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/signup", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    request: SignupRequest,
    ctx: AppContext = Depends(get_context),
) -> UserResponse:
    """
    Create an account and its custodial wallet.

    Returns:
        The new profile (never the encrypted wallet)
    """
    user = await AccountService(ctx).signup(request)
    return UserResponse(message="User created successfully", user=UserOut.model_validate(user))


@router.post("/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    ctx: AppContext = Depends(get_context),
) -> TokenResponse:
    service = AccountService(ctx)
    user, token = await service.login(request.email, request.password)
    logger.info(f"Login: {user.uid}")
    return TokenResponse(
        token=token,
        expires_in=ctx.tokens.expires_in,
        user=UserOut.model_validate(user),
    )


@router.post("/federated", response_model=UserResponse)
async def federated_sign_in(
    response: Response,
    identity: Identity = Depends(get_identity),
    ctx: AppContext = Depends(get_context),
) -> UserResponse:
    """
    Sign in with a token minted by a trusted identity provider.

    The first call for an identity creates its account and wallet (201);
    later calls return the existing profile unchanged.
    """
    user, created = await AccountService(ctx).federated_sign_in(identity)
    if created:
        response.status_code = status.HTTP_201_CREATED
        return UserResponse(message="User created successfully", user=UserOut.model_validate(user))
    return UserResponse(user=UserOut.model_validate(user))


@router.get("/profile", response_model=UserResponse)
async def get_profile(user: UserAccount = Depends(get_current_user)) -> UserResponse:
    return UserResponse(user=UserOut.model_validate(user))


@router.put("/profile", response_model=UpdatedFieldsResponse)
async def update_profile(
    request: ProfileUpdateRequest,
    user: UserAccount = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
) -> UpdatedFieldsResponse:
    updated = await AccountService(ctx).update_profile(user, request)
    return UpdatedFieldsResponse(message="Profile updated successfully", updated_fields=updated)


@router.get("/wallet", response_model=WalletResponse)
async def get_wallet(user: UserAccount = Depends(get_current_user)) -> WalletResponse:
    """Wallet address only. Keys and mnemonic never leave the service."""
    return WalletResponse(wallet_address=user.wallet_address)


@router.delete("/account", response_model=MessageResponse)
async def delete_account(
    user: UserAccount = Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
) -> MessageResponse:
    await AccountService(ctx).delete_account(user)
    return MessageResponse(message="Account deleted successfully")
