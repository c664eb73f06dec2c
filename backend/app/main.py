import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.errors import AlreadyFinalized, LendingError, NotFound, PreconditionFailed, Unauthorized
from app.api.routes.auth import router as auth_router
from app.api.routes.users import router as users_router
from app.api.routes.loans import router as loans_router
from app.api.routes.events import router as events_router
from app.api.routes.wallet import router as wallet_router
from app.api.deps import lending_context
from app.db.session import SessionLocal
from app.services.collateral_vault import restore_custody
from app.services.tokens import InMemoryAssetRegistry

logging.basicConfig(level=getattr(logging, str(settings.log_level).upper(), logging.INFO))
logger = logging.getLogger("app")

app = FastAPI(title="Collateralized Lending Ledger")

origins = [o.strip() for o in (settings.cors_origins or "").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_STATUS_BY_ERROR = (
    (Unauthorized, 403),
    (NotFound, 404),
    (AlreadyFinalized, 409),
    (PreconditionFailed, 422),
)


def status_for(exc: LendingError) -> int:
    for cls, code in _STATUS_BY_ERROR:
        if isinstance(exc, cls):
            return code
    return 400


@app.exception_handler(LendingError)
async def _lending_error(request: Request, exc: LendingError):
    logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.code)
    return JSONResponse(status_code=status_for(exc), content={"detail": exc.code})


@app.get("/health")
@app.get("/api/health")
def health():
    return {"status": "ok"}

app.include_router(auth_router)
app.include_router(users_router)
app.include_router(loans_router)
app.include_router(events_router)
app.include_router(wallet_router)

@app.on_event("startup")
def _restore_vault_custody():
    ctx = lending_context()
    if not isinstance(ctx.assets, InMemoryAssetRegistry):
        return
    s = SessionLocal()
    try:
        restore_custody(s, ctx.assets, ctx.vault_identity)
    finally:
        s.close()
