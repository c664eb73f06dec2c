from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterator

from app.core.config import Settings, settings
from app.services.oracle import HttpScoreOracle, ScoreOracle, StaticScoreOracle
from app.services.tokens import AssetRegistry, InMemoryAssetRegistry, InMemoryValueToken, ValueToken
from app.utils.clock import utcnow


class LoanLocks:
    """Per-loan mutual exclusion plus one lock serializing id allocation.

    Per-loan entries are reference counted and dropped once nobody holds or
    waits on them, so asking about unknown ids leaves nothing behind.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._by_loan: dict[int, list] = {}
        self.allocation = threading.Lock()

    def __len__(self) -> int:
        with self._guard:
            return len(self._by_loan)

    @contextmanager
    def hold(self, loan_id: int) -> Iterator[None]:
        key = int(loan_id)
        with self._guard:
            entry = self._by_loan.get(key)
            if entry is None:
                # [lock, holders + waiters]
                entry = self._by_loan[key] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._by_loan[key]


@dataclass
class LendingContext:
    admin_identity: str
    vault_identity: str
    reserve_identity: str
    value_token: ValueToken
    assets: AssetRegistry
    oracle: ScoreOracle
    clock: Callable[[], datetime] = utcnow
    locks: LoanLocks = field(default_factory=LoanLocks)


def build_context(cfg: Settings = settings) -> LendingContext:
    token = InMemoryValueToken(reserve=cfg.reserve_identity)
    if cfg.reserve_initial_balance:
        token.mint(cfg.reserve_identity, int(cfg.reserve_initial_balance))

    if cfg.score_oracle_url:
        oracle: ScoreOracle = HttpScoreOracle(cfg.score_oracle_url, timeout_s=cfg.score_oracle_timeout_s)
    else:
        oracle = StaticScoreOracle(default=cfg.default_credit_score)

    return LendingContext(
        admin_identity=cfg.admin_identity,
        vault_identity=cfg.vault_identity,
        reserve_identity=cfg.reserve_identity,
        value_token=token,
        assets=InMemoryAssetRegistry(),
        oracle=oracle,
    )
