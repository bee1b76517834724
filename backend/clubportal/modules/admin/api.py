from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from clubportal.api.deps import get_caller
from clubportal.db.session import get_db
from clubportal.schemas.common import ReasonIn, ResultOut
from clubportal.services.admin import club_summary, list_clubs, list_users, set_user_active
from clubportal.services.club_requests import (
    approve_club_request,
    deactivate_club,
    list_pending_club_requests,
    reject_club_request,
)
from clubportal.services.identity import Caller

router = APIRouter()


@router.get("/club-requests/pending", response_model=ResultOut)
def pending_club_requests(caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    return ResultOut(data=list_pending_club_requests(db, caller))


@router.post("/club-requests/{request_id}/approve", response_model=ResultOut)
def approve(request_id: int, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    out = approve_club_request(db, caller, request_id=request_id)
    return ResultOut(data=out, message="Club created successfully")


@router.post("/club-requests/{request_id}/reject", response_model=ResultOut)
def reject(
    request_id: int,
    payload: ReasonIn | None = None,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
):
    reject_club_request(db, caller, request_id=request_id, reason=payload.reason if payload else None)
    return ResultOut(message="Request rejected")


@router.get("/clubs", response_model=ResultOut)
def clubs(caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    return ResultOut(data=list_clubs(db, caller))


@router.get("/clubs/{club_id}", response_model=ResultOut)
def club(club_id: int, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    return ResultOut(data=club_summary(db, caller, club_id))


@router.post("/clubs/{club_id}/deactivate", response_model=ResultOut)
def deactivate(club_id: int, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    deactivate_club(db, caller, club_id=club_id)
    return ResultOut(message="Club deactivated")


@router.get("/users", response_model=ResultOut)
def users(caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    return ResultOut(data=list_users(db, caller))


@router.post("/users/{user_id}/deactivate", response_model=ResultOut)
def deactivate_user(user_id: int, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    set_user_active(db, caller, user_id=user_id, active=False)
    return ResultOut(message="User deactivated")


@router.post("/users/{user_id}/activate", response_model=ResultOut)
def activate_user(user_id: int, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    set_user_active(db, caller, user_id=user_id, active=True)
    return ResultOut(message="User activated")
