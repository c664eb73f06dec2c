from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import db, lending_context
from app.core.config import Settings
from app.core.security import create_access_token
from app.db.base import Base
from app.main import app, status_for
from app.core.errors import AlreadyFinalized, InvalidLock, LoanNotFound, Unauthorized
from app.models.account import Account  # noqa: F401  (accounts table)
from app.models.loan_event import LoanEvent  # noqa: F401  (loan_events table)
from app.services.context import LendingContext, build_context
from app.services.ledger_store import LedgerStore
from app.services.oracle import StaticScoreOracle
from app.services.tokens import InMemoryAssetRegistry, InMemoryValueToken

ADMIN = "admin"


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture()
def engine():
    eng = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session(engine):
    Session = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    s = Session()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture()
def clock():
    return FakeClock(datetime(2026, 3, 1, 8, 0, 0))


@pytest.fixture()
def ctx(clock):
    token = InMemoryValueToken(reserve="reserve")
    token.mint("reserve", 100_000)
    assets = InMemoryAssetRegistry()
    assets.mint("assetA", 7, "alice")
    return LendingContext(
        admin_identity=ADMIN,
        vault_identity="vault",
        reserve_identity="reserve",
        value_token=token,
        assets=assets,
        oracle=StaticScoreOracle(default=700, by_user={"carol": 550}),
        clock=clock,
    )


@pytest.fixture()
def client(session, ctx):
    def _db():
        yield session

    app.dependency_overrides[db] = _db
    app.dependency_overrides[lending_context] = lambda: ctx
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _auth(identity: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(identity)}"}


def _request(client, who="alice", token_id=7, amount=1000, duration_seconds=86400):
    return client.post(
        "/loans",
        json={
            "amount": amount,
            "duration_seconds": duration_seconds,
            "collateral_asset": "assetA",
            "collateral_token_id": token_id,
        },
        headers=_auth(who),
    )


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_error_status_mapping():
    assert status_for(Unauthorized()) == 403
    assert status_for(LoanNotFound()) == 404
    assert status_for(AlreadyFinalized()) == 409
    assert status_for(InvalidLock()) == 422


def test_invalid_token_is_rejected(client):
    r = client.get("/loans/1", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
    assert r.json()["detail"] == "invalid_token"


def test_full_lifecycle_over_http(client, session, ctx):
    r = client.post("/users/alice/verify", json={"verified": True}, headers=_auth(ADMIN))
    assert r.status_code == 200
    assert r.json() == {"identity": "alice", "verified": True, "credit_score": None, "eligible": None}

    r = _request(client)
    assert r.status_code == 200, r.text
    loan = r.json()
    assert loan["id"] == 1
    assert loan["status"] == "requested"
    assert loan["interest_rate"] == 5
    assert ctx.assets.owner_of("assetA", 7) == "vault"

    r = client.get("/loans/1/repayment", headers=_auth("alice"))
    assert r.json()["total_repayment"] == 1050
    assert r.json()["is_due"] is False

    r = client.post("/loans/1/approve", headers=_auth(ADMIN))
    assert r.status_code == 200
    assert r.json()["approved_at"] is not None
    assert ctx.value_token.balance_of("alice") == 1000

    ctx.value_token.mint("alice", 50)
    ctx.value_token.approve("alice", 1050)
    r = client.post("/loans/1/repay", headers=_auth("alice"))
    assert r.status_code == 200
    assert r.json() == {"loan_id": 1, "total_repayment": 1050}
    assert ctx.assets.owner_of("assetA", 7) == "alice"

    r = client.post("/loans/1/repay", headers=_auth("alice"))
    assert r.status_code == 409
    assert r.json()["detail"] == "loan_already_finalized"

    r = client.post("/loans/1/check-default", headers=_auth("bob"))
    assert r.status_code == 409

    r = client.get("/events", params={"loan_id": 1}, headers=_auth("bob"))
    assert [e["name"] for e in r.json()] == ["LoanRequested", "LoanApproved", "LoanRepaid"]

    r = client.get("/loans", params={"status": "repaid"}, headers=_auth("bob"))
    assert [ln["id"] for ln in r.json()] == [1]


def test_unknown_loan_is_404(client):
    for loan_id in (0, 99):
        r = client.get(f"/loans/{loan_id}", headers=_auth("alice"))
        assert r.status_code == 404
        assert r.json()["detail"] == "loan_not_found"


def test_non_admin_cannot_approve_or_verify(client, session):
    LedgerStore(session).set_verified("alice", True)
    session.commit()
    assert _request(client).status_code == 200

    assert client.post("/loans/1/approve", headers=_auth("alice")).status_code == 403
    assert client.post("/users/bob/verify", json={}, headers=_auth("alice")).status_code == 403


def test_ineligible_borrowers_get_422(client, session, ctx):
    r = _request(client)
    assert r.status_code == 422
    assert r.json()["detail"] == "user_not_verified"

    ctx.assets.mint("assetA", 9, "carol")
    LedgerStore(session).set_verified("carol", True)
    session.commit()
    r = _request(client, who="carol", token_id=9)
    assert r.status_code == 422
    assert r.json()["detail"] == "credit_score_too_low"


def test_request_body_is_validated(client, session):
    LedgerStore(session).set_verified("alice", True)
    session.commit()
    assert _request(client, amount=0).status_code == 422
    assert _request(client, duration_seconds=-1).status_code == 422


def test_check_default_over_http(client, session, ctx, clock):
    LedgerStore(session).set_verified("alice", True)
    session.commit()
    assert _request(client, duration_seconds=3600).status_code == 200

    r = client.post("/loans/1/check-default", headers=_auth("bob"))
    assert r.status_code == 422
    assert r.json()["detail"] == "loan_not_due"

    clock.now = clock.now + timedelta(hours=2)
    r = client.post("/loans/1/check-default", headers=_auth("bob"))
    assert r.status_code == 200
    assert r.json()["status"] == "defaulted"
    assert ctx.assets.owner_of("assetA", 7) == ADMIN


def test_profile_reads_score_fresh(client, session, ctx):
    LedgerStore(session).set_verified("alice", True)
    session.commit()

    r = client.get("/users/alice", params={"include_score": True}, headers=_auth("alice"))
    assert r.json() == {"identity": "alice", "verified": True, "credit_score": 700, "eligible": True}

    ctx.oracle.set_score("alice", 600)
    r = client.get("/users/alice", params={"include_score": True}, headers=_auth("alice"))
    assert r.json()["eligible"] is False


def test_register_and_login(client):
    r = client.post("/auth/register", json={"identity": "dave", "password": "hunter22"})
    assert r.status_code == 200
    assert r.json()["identity"] == "dave"

    assert client.post("/auth/register", json={"identity": "dave", "password": "hunter22"}).status_code == 409
    assert client.post("/auth/login", json={"identity": "dave", "password": "wrong-pass"}).status_code == 401

    r = client.post("/auth/login", json={"identity": "dave", "password": "hunter22"})
    assert r.status_code == 200
    token = r.json()["access_token"]
    assert client.get("/users/dave", headers={"Authorization": f"Bearer {token}"}).json()["verified"] is False


@pytest.fixture()
def built_client(session):
    built = build_context(Settings(reserve_initial_balance=10_000, default_credit_score=700))

    def _db():
        yield session

    app.dependency_overrides[db] = _db
    app.dependency_overrides[lending_context] = lambda: built
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def test_lifecycle_against_default_wiring(built_client):
    c = built_client
    assert c.post("/users/alice/verify", json={"verified": True}, headers=_auth(ADMIN)).status_code == 200

    r = c.post("/wallet/assets", json={"asset": "assetA", "token_id": 7, "owner": "alice"}, headers=_auth(ADMIN))
    assert r.json() == {"asset": "assetA", "token_id": 7, "owner": "alice"}
    r = c.post("/wallet/assets", json={"asset": "assetA", "token_id": 7, "owner": "bob"}, headers=_auth(ADMIN))
    assert r.status_code == 409

    assert _request(c).status_code == 200
    assert c.get("/wallet/assets/assetA/7", headers=_auth("alice")).json()["owner"] == "vault"
    assert c.post("/loans/1/approve", headers=_auth(ADMIN)).status_code == 200
    assert c.get("/wallet/reserve", headers=_auth(ADMIN)).json()["balance"] == 9_000

    r = c.post("/loans/1/repay", headers=_auth("alice"))
    assert r.status_code == 422
    assert r.json()["detail"] == "repayment_transfer_failed"

    assert c.post("/wallet/funds", json={"owner": "alice", "amount": 50}, headers=_auth(ADMIN)).status_code == 200
    r = c.post("/wallet/allowance", json={"amount": 1050}, headers=_auth("alice"))
    assert r.json() == {"identity": "alice", "balance": 1050, "allowance": 1050}

    r = c.post("/loans/1/repay", headers=_auth("alice"))
    assert r.status_code == 200
    assert r.json()["total_repayment"] == 1050
    assert c.get("/wallet/assets/assetA/7", headers=_auth("alice")).json()["owner"] == "alice"
    assert c.get("/wallet/alice", headers=_auth("alice")).json() == {"identity": "alice", "balance": 0, "allowance": 0}


def test_wallet_provisioning_is_admin_only(built_client):
    c = built_client
    assert c.post("/wallet/funds", json={"owner": "alice", "amount": 5}, headers=_auth("alice")).status_code == 403
    r = c.post("/wallet/assets", json={"asset": "assetA", "token_id": 1, "owner": "alice"}, headers=_auth("alice"))
    assert r.status_code == 403
