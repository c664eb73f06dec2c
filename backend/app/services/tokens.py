"""Value and asset transfer primitives consumed by the lending ledger.

The ledger never owns balances or token ownership itself; it only asks these
collaborators to move things. The in-memory implementations back the default
service wiring and the test suite.
"""

from __future__ import annotations

import threading
from typing import Protocol


class ValueToken(Protocol):
    """Fungible value held by the ledger's reserve."""

    def transfer(self, to: str, amount: int) -> bool:
        """Move `amount` from the reserve to `to`."""
        ...

    def transfer_from(self, from_: str, to: str, amount: int) -> bool:
        """Pull `amount` from `from_` to `to` against an allowance."""
        ...

    def reclaim(self, from_: str, amount: int) -> bool:
        """Pull `amount` back into the reserve without an allowance.

        Only used to reverse a disbursement the reserve itself made.
        """
        ...

    def refund(self, to: str, amount: int) -> bool:
        """Return a pulled `amount` from the reserve to `to` and restore the
        allowance the pull consumed.

        Only used to reverse a `transfer_from` into the reserve.
        """
        ...


class AssetRegistry(Protocol):
    """Non-fungible assets, addressed by asset contract identity and token id."""

    def owner_of(self, asset: str, token_id: int) -> str | None:
        ...

    def transfer_from(self, asset: str, from_: str, to: str, token_id: int) -> None:
        """Move the token or raise; never a partial transfer."""
        ...


class AssetTransferError(RuntimeError):
    pass


class InMemoryValueToken:
    def __init__(self, reserve: str):
        # the ledger acts as the reserve; allowances are granted to it
        self.reserve = reserve
        self._balances: dict[str, int] = {}
        self._allowances: dict[tuple[str, str], int] = {}
        self._lock = threading.Lock()

    def mint(self, to: str, amount: int) -> None:
        with self._lock:
            self._balances[to] = self._balances.get(to, 0) + int(amount)

    def approve(self, owner: str, amount: int) -> None:
        with self._lock:
            self._allowances[(owner, self.reserve)] = int(amount)

    def balance_of(self, who: str) -> int:
        with self._lock:
            return self._balances.get(who, 0)

    def allowance(self, owner: str) -> int:
        with self._lock:
            return self._allowances.get((owner, self.reserve), 0)

    def _move(self, from_: str, to: str, amount: int) -> bool:
        if amount < 0 or self._balances.get(from_, 0) < amount:
            return False
        self._balances[from_] = self._balances.get(from_, 0) - amount
        self._balances[to] = self._balances.get(to, 0) + amount
        return True

    def transfer(self, to: str, amount: int) -> bool:
        with self._lock:
            return self._move(self.reserve, to, int(amount))

    def transfer_from(self, from_: str, to: str, amount: int) -> bool:
        amount = int(amount)
        with self._lock:
            key = (from_, self.reserve)
            allowed = self._allowances.get(key, 0)
            if from_ != self.reserve and allowed < amount:
                return False
            if not self._move(from_, to, amount):
                return False
            if from_ != self.reserve:
                self._allowances[key] = allowed - amount
            return True

    def reclaim(self, from_: str, amount: int) -> bool:
        with self._lock:
            return self._move(from_, self.reserve, int(amount))

    def refund(self, to: str, amount: int) -> bool:
        amount = int(amount)
        with self._lock:
            if not self._move(self.reserve, to, amount):
                return False
            key = (to, self.reserve)
            self._allowances[key] = self._allowances.get(key, 0) + amount
            return True


class InMemoryAssetRegistry:
    def __init__(self):
        self._owners: dict[tuple[str, int], str] = {}
        self._lock = threading.Lock()

    def mint(self, asset: str, token_id: int, to: str) -> None:
        with self._lock:
            key = (asset, int(token_id))
            if key in self._owners:
                raise AssetTransferError(f"token_exists:{asset}:{token_id}")
            self._owners[key] = to

    def owner_of(self, asset: str, token_id: int) -> str | None:
        with self._lock:
            return self._owners.get((asset, int(token_id)))

    def transfer_from(self, asset: str, from_: str, to: str, token_id: int) -> None:
        with self._lock:
            key = (asset, int(token_id))
            owner = self._owners.get(key)
            if owner is None:
                raise AssetTransferError(f"token_not_found:{asset}:{token_id}")
            if owner != from_:
                raise AssetTransferError(f"not_token_owner:{asset}:{token_id}")
            self._owners[key] = to
