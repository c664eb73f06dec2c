"""Provisioning for the in-process token collaborators.

Only meaningful when the service runs with the in-memory value token and
asset registry; against real token contracts these endpoints answer 409.
Balances live in process memory and do not survive a restart; tokens still
locked in `collateral_locks` are handed back to the vault at startup.
"""

from fastapi import APIRouter, Depends, HTTPException

from app.api.deps import current_user, lending_context, require_admin
from app.schemas.wallet import AllowanceIn, AssetOut, FundIn, MintAssetIn, WalletOut
from app.services.context import LendingContext
from app.services.tokens import AssetTransferError, InMemoryAssetRegistry, InMemoryValueToken

router = APIRouter(prefix="/wallet", tags=["wallet"])


def _value_token(ctx: LendingContext) -> InMemoryValueToken:
    if not isinstance(ctx.value_token, InMemoryValueToken):
        raise HTTPException(status_code=409, detail="value_token_not_managed")
    return ctx.value_token


def _assets(ctx: LendingContext) -> InMemoryAssetRegistry:
    if not isinstance(ctx.assets, InMemoryAssetRegistry):
        raise HTTPException(status_code=409, detail="asset_registry_not_managed")
    return ctx.assets


def _wallet(token: InMemoryValueToken, identity: str) -> WalletOut:
    return WalletOut(identity=identity, balance=token.balance_of(identity), allowance=token.allowance(identity))


@router.get("/{identity}", response_model=WalletOut)
def get_wallet(identity: str, ctx: LendingContext = Depends(lending_context), u=Depends(current_user)):
    return _wallet(_value_token(ctx), identity)


@router.post("/funds", response_model=WalletOut)
def fund(body: FundIn, ctx: LendingContext = Depends(lending_context), admin=Depends(require_admin)):
    token = _value_token(ctx)
    token.mint(body.owner, body.amount)
    return _wallet(token, body.owner)


@router.post("/allowance", response_model=WalletOut)
def set_allowance(body: AllowanceIn, ctx: LendingContext = Depends(lending_context), u: str = Depends(current_user)):
    # the caller grants the ledger's reserve the right to pull repayments
    token = _value_token(ctx)
    token.approve(u, body.amount)
    return _wallet(token, u)


@router.post("/assets", response_model=AssetOut)
def mint_asset(body: MintAssetIn, ctx: LendingContext = Depends(lending_context), admin=Depends(require_admin)):
    reg = _assets(ctx)
    try:
        reg.mint(body.asset, body.token_id, body.owner)
    except AssetTransferError:
        raise HTTPException(status_code=409, detail="token_exists")
    return AssetOut(asset=body.asset, token_id=body.token_id, owner=reg.owner_of(body.asset, body.token_id))


@router.get("/assets/{asset}/{token_id}", response_model=AssetOut)
def get_asset(asset: str, token_id: int, ctx: LendingContext = Depends(lending_context), u=Depends(current_user)):
    return AssetOut(asset=asset, token_id=token_id, owner=_assets(ctx).owner_of(asset, token_id))
