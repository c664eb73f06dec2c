import logging

from app.core.errors import IneligibleBorrower, ScoreUnavailable
from app.services.ledger_store import LedgerStore
from app.services.oracle import OracleError, ScoreOracle

logger = logging.getLogger(__name__)

MIN_CREDIT_SCORE = 600


class CreditGate:
    """Verification flag plus a fresh oracle score, read on every call."""

    def __init__(self, store: LedgerStore, oracle: ScoreOracle):
        self.store = store
        self.oracle = oracle

    def credit_score(self, user: str) -> int:
        try:
            reading = self.oracle.latest_reading(user)
        except OracleError as e:
            raise ScoreUnavailable(message=str(e)) from e
        # round metadata and staleness are not consulted
        return int(reading.answer)

    def check_eligible(self, user: str) -> bool:
        if not self.store.is_verified(user):
            return False
        return self.credit_score(user) > MIN_CREDIT_SCORE

    def require_eligible(self, user: str) -> int:
        if not self.store.is_verified(user):
            logger.warning("credit gate: %s is not verified", user)
            raise IneligibleBorrower("user_not_verified")
        score = self.credit_score(user)
        if score <= MIN_CREDIT_SCORE:
            logger.warning("credit gate: %s scored %s", user, score)
            raise IneligibleBorrower("credit_score_too_low")
        return score
