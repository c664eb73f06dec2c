from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.api.deps import db, current_user
from app.schemas.event import EventOut
from app.services.events import list_events

router = APIRouter(prefix="/events", tags=["events"])


@router.get("", response_model=list[EventOut])
def get_events(
    s: Session = Depends(db),
    u=Depends(current_user),
    loan_id: int | None = Query(default=None),
    name: str | None = Query(default=None),
    limit: int = Query(default=200, ge=1, le=1000),
):
    return list_events(s, loan_id=loan_id, name=name, limit=limit)
