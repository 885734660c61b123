"""
Wallet Routes Module

This module exposes wallet resolution and wallet mutations over HTTP.

Key Features:
- Startup and user wallet resolution
- Reverse lookup by wallet address
- Connect and disconnect of wallets
- Seeding and status of the wallet store
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse

from ..db.schemas import (
    ConnectWalletRequest,
    ConnectWalletResponse,
    DisconnectWalletRequest,
    DisconnectWalletResponse,
    InitializeResponse,
    UserByWalletResponse,
    WalletResponse,
    WalletStatusResponse,
)
from ..services.resolver import WalletResolver
from ..services.seeder import WalletSeeder
from ..services.wallet_store import WalletRecordStore
from ..utils.logger import api_logger as logger

router = APIRouter(tags=["Wallets"])


def get_wallet_store(request: Request) -> WalletRecordStore:
    return request.app.state.wallet_store


def get_resolver(request: Request) -> WalletResolver:
    return request.app.state.resolver


def get_seeder(request: Request) -> WalletSeeder:
    return request.app.state.seeder


@router.get("/status", response_model=WalletStatusResponse)
async def wallet_status(store: WalletRecordStore = Depends(get_wallet_store)):
    """Report whether any wallets are stored."""
    user_wallets, startup_wallets = await store.count_wallets()
    return WalletStatusResponse(
        wallets_exist=user_wallets > 0 or startup_wallets > 0,
        user_wallets=user_wallets,
        startup_wallets=startup_wallets
    )


@router.post("/initialize", response_model=InitializeResponse)
async def initialize_wallets(seeder: WalletSeeder = Depends(get_seeder)):
    """Write the known seed wallets into the store."""
    success = await seeder.initialize_known_wallets()
    return InitializeResponse(success=success)


@router.get("/user/{user_id}", response_model=WalletResponse)
async def get_user_wallet(user_id: str, resolver: WalletResolver = Depends(get_resolver)):
    """
    Get the wallet connected by a user.

    Raises:
        HTTPException(404): If the user has no wallet
    """
    logger.info(f"Getting wallet address for user: {user_id}")
    resolved = await resolver.lookup_user_wallet(user_id)
    if resolved is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Wallet not found")
    return WalletResponse(wallet_address=resolved.wallet_address, source=resolved.source)


@router.get("/startup/{startup_id}", response_model=WalletResponse)
async def get_startup_wallet(startup_id: str, resolver: WalletResolver = Depends(get_resolver)):
    """
    Get the wallet investments in a startup are paid to.

    Raises:
        HTTPException(404): Only when the default fallback is disabled and nothing matched
    """
    logger.info(f"Getting wallet address for startup: {startup_id}")
    resolved = await resolver.lookup_startup_wallet(startup_id)
    if resolved is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Wallet not found")
    return WalletResponse(wallet_address=resolved.wallet_address, source=resolved.source)


@router.get("/address/{wallet_address}", response_model=UserByWalletResponse)
async def get_user_by_wallet(wallet_address: str, store: WalletRecordStore = Depends(get_wallet_store)):
    """Find the user that connected a wallet address."""
    match = await store.lookup_subject_by_wallet(wallet_address)
    if match is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserByWalletResponse(user_id=match.subject_id, source=match.source)


@router.post("/connect", response_model=ConnectWalletResponse)
async def connect_wallet(body: ConnectWalletRequest, store: WalletRecordStore = Depends(get_wallet_store)):
    """
    Connect a wallet to a user and/or a startup.

    The write is synchronous; a store failure answers 503 with success false
    so the client can offer a retry.
    """
    if not body.user_id and not body.startup_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                            detail="Either user_id or startup_id is required")

    response = ConnectWalletResponse(success=True, wallet_address=body.wallet_address)
    if body.user_id:
        stored = await store.put_wallet(body.user_id, body.wallet_address,
                                        is_permanent=body.is_permanent, source="user-update")
        response.user_id = body.user_id
        response.success = response.success and stored
        logger.info(f"Wallet connect for user {body.user_id}: stored={stored}")

    if body.startup_id:
        founder_id = body.founder_id or body.user_id or body.startup_id
        stored = await store.put_startup_wallet(body.startup_id, founder_id, body.wallet_address,
                                                source="user-update")
        response.startup_id = body.startup_id
        response.founder_id = founder_id
        response.success = response.success and stored
        logger.info(f"Wallet connect for startup {body.startup_id}: stored={stored}")

    if not response.success:
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                            content=response.model_dump())
    return response


@router.post("/disconnect", response_model=DisconnectWalletResponse)
async def disconnect_wallet(body: DisconnectWalletRequest, store: WalletRecordStore = Depends(get_wallet_store)):
    """
    Remove a user's non-permanent wallet.

    Raises:
        HTTPException(404): If the user has no wallet record
        HTTPException(409): If the wallet is permanent
    """
    record = await store.get_wallet_by_subject(body.user_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Wallet not found")
    if record.is_permanent:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT,
                            detail="Permanent wallets cannot be disconnected")

    removed = await store.remove_wallet(body.user_id)
    if not removed:
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                            content={"success": False, "user_id": body.user_id})
    return DisconnectWalletResponse(success=True, user_id=body.user_id)
