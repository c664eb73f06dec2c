from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import httpx


@dataclass(frozen=True)
class OracleReading:
    round_id: int
    answer: int
    started_at: int
    updated_at: int
    answered_in_round: int


class ScoreOracle(Protocol):
    def latest_reading(self, user: str) -> OracleReading:
        ...


class OracleError(RuntimeError):
    pass


class StaticScoreOracle:
    """Answers a fixed score, optionally overridden per user."""

    def __init__(self, default: int = 0, by_user: dict[str, int] | None = None):
        self.default = int(default)
        self.by_user: dict[str, int] = dict(by_user or {})
        self._round = 0

    def set_score(self, user: str, score: int) -> None:
        self.by_user[user] = int(score)

    def latest_reading(self, user: str) -> OracleReading:
        self._round += 1
        return OracleReading(
            round_id=self._round,
            answer=self.by_user.get(user, self.default),
            started_at=0,
            updated_at=0,
            answered_in_round=self._round,
        )


class HttpScoreOracle:
    """Reads the latest round from a JSON feed.

    `url` may contain a `{user}` placeholder. The payload is expected to carry
    `roundId`, `answer`, `startedAt`, `updatedAt` and `answeredInRound`.
    """

    def __init__(self, url: str, *, timeout_s: float = 10.0, transport: httpx.BaseTransport | None = None):
        self.url = url
        self.timeout_s = timeout_s
        self.transport = transport

    def latest_reading(self, user: str) -> OracleReading:
        url = self.url.format(user=user) if "{user}" in self.url else self.url

        with httpx.Client(timeout=self.timeout_s, follow_redirects=True, transport=self.transport) as client:
            try:
                r = client.get(url)
            except httpx.HTTPError as e:
                raise OracleError(f"score_oracle_request_failed:{e}") from e

        if r.status_code != 200:
            raise OracleError(f"score_oracle_status_{r.status_code}")

        try:
            body = r.json()
            return OracleReading(
                round_id=int(body.get("roundId", 0)),
                answer=int(body["answer"]),
                started_at=int(body.get("startedAt", 0)),
                updated_at=int(body.get("updatedAt", 0)),
                answered_in_round=int(body.get("answeredInRound", 0)),
            )
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise OracleError("score_oracle_bad_payload") from e
