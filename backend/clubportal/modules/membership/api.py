from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clubportal.api.deps import get_caller
from clubportal.db.session import get_db
from clubportal.schemas.common import ReasonIn, ResultOut
from clubportal.schemas.membership import JoinApproveIn, JoinRequestIn
from clubportal.services.identity import Caller
from clubportal.services.membership import (
    approve_join_request,
    list_members,
    list_pending_join_requests,
    reject_join_request,
    remove_member,
    request_join,
)

router = APIRouter()


@router.post("/join/request", response_model=ResultOut)
def join(payload: JoinRequestIn, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    out = request_join(db, caller, access_code=payload.access_code, message=payload.message)
    return ResultOut(data=out, message="Join request submitted")


@router.get("/join/pending", response_model=ResultOut)
def pending(club_id: int = Query(...), caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    return ResultOut(data=list_pending_join_requests(db, caller, club_id))


@router.post("/join/{request_id}/approve", response_model=ResultOut)
def approve(request_id: int, payload: JoinApproveIn, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    approve_join_request(db, caller, request_id=request_id, role_id=payload.role_id)
    return ResultOut(message="Member approved and added to club")


@router.post("/join/{request_id}/reject", response_model=ResultOut)
def reject(
    request_id: int,
    payload: ReasonIn | None = None,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
):
    reject_join_request(db, caller, request_id=request_id, reason=payload.reason if payload else None)
    return ResultOut(message="Request rejected")


@router.get("/clubs/{club_id}/members", response_model=ResultOut)
def members(club_id: int, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    return ResultOut(data=list_members(db, caller, club_id))


@router.post("/clubs/{club_id}/members/{user_id}/remove", response_model=ResultOut)
def remove(club_id: int, user_id: int, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    remove_member(db, caller, club_id=club_id, user_id=user_id)
    return ResultOut(message="Member removed")
