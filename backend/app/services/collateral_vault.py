from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import AssetTransferFailed, InvalidLock
from app.models.collateral_lock import CollateralLock, CustodyState
from app.services.tokens import AssetRegistry, AssetTransferError, InMemoryAssetRegistry
from app.services.unit_of_work import Compensations
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LockHandle:
    lock_id: int
    asset: str
    token_id: int


class CollateralVault:
    """Custody of pledged tokens.

    Every lock is a row in `collateral_locks`; custody moves through the asset
    registry first and the row follows in the same session. Each external
    move registers its inverse so a failed transaction can hand the token
    back.
    """

    def __init__(
        self,
        s: Session,
        assets: AssetRegistry,
        vault_identity: str,
        *,
        clock: Callable[[], datetime] = utcnow,
        compensations: Compensations | None = None,
    ):
        self.s = s
        self.assets = assets
        self.vault_identity = vault_identity
        self.clock = clock
        self.compensations = compensations if compensations is not None else Compensations()

    def _transfer(self, asset: str, from_: str, to: str, token_id: int) -> None:
        try:
            self.assets.transfer_from(asset, from_, to, token_id)
        except AssetTransferError as e:
            logger.warning("collateral transfer %s:%s %s -> %s failed: %s", asset, token_id, from_, to, e)
            raise AssetTransferFailed(message=str(e)) from e
        self.compensations.add(
            f"return {asset}:{token_id} to {from_}",
            self.assets.transfer_from,
            asset,
            to,
            from_,
            token_id,
        )

    def lock(self, asset: str, token_id: int, from_: str) -> LockHandle:
        self._transfer(asset, from_, self.vault_identity, token_id)

        row = CollateralLock(
            asset=asset,
            token_id=int(token_id),
            depositor=from_,
            holder=self.vault_identity,
            state=CustodyState.LOCKED,
        )
        self.s.add(row)
        self.s.flush()
        return LockHandle(lock_id=row.id, asset=row.asset, token_id=row.token_id)

    def _active(self, handle: LockHandle) -> CollateralLock:
        row = self.s.execute(
            select(CollateralLock).where(CollateralLock.id == handle.lock_id).with_for_update()
        ).scalar_one_or_none()
        if (
            row is None
            or row.state != CustodyState.LOCKED
            or row.asset != handle.asset
            or int(row.token_id) != int(handle.token_id)
        ):
            raise InvalidLock()
        return row

    def _close(self, handle: LockHandle, to: str, state: CustodyState) -> CollateralLock:
        row = self._active(handle)
        self._transfer(row.asset, self.vault_identity, to, row.token_id)
        row.state = state
        row.holder = to
        row.closed_at = self.clock()
        self.s.flush()
        return row

    def release(self, handle: LockHandle, to: str) -> CollateralLock:
        return self._close(handle, to, CustodyState.RELEASED)

    def seize(self, handle: LockHandle, to: str) -> CollateralLock:
        return self._close(handle, to, CustodyState.SEIZED)

    def custody(self, handle: LockHandle) -> CollateralLock | None:
        return self.s.get(CollateralLock, handle.lock_id)


def restore_custody(s: Session, assets: InMemoryAssetRegistry, vault_identity: str) -> int:
    """Re-establish vault ownership of every token still locked in the ledger.

    The in-memory registry starts empty on each boot while `collateral_locks`
    rows persist; tokens the registry already knows are left alone.
    """
    restored = 0
    rows = s.execute(select(CollateralLock).where(CollateralLock.state == CustodyState.LOCKED)).scalars().all()
    for row in rows:
        if assets.owner_of(row.asset, row.token_id) is None:
            assets.mint(row.asset, row.token_id, vault_identity)
            restored += 1
    if restored:
        logger.info("restored vault custody of %s locked token(s)", restored)
    return restored
