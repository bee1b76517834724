from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from clubportal.api.deps import get_caller
from clubportal.db.session import get_db
from clubportal.schemas.clubs import ClubRequestCreateIn
from clubportal.schemas.common import ResultOut
from clubportal.services.club_requests import list_my_club_requests, submit_club_request
from clubportal.services.identity import Caller

router = APIRouter()


@router.post("", response_model=ResultOut)
def create_request(payload: ClubRequestCreateIn, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    request_id = submit_club_request(
        db,
        caller,
        club_name=payload.club_name,
        president_name=payload.president_name,
        description=payload.description,
        staff_advisor=payload.staff_advisor,
        requester_comment=payload.requester_comment,
    )
    return ResultOut(data={"request_id": request_id}, message="Club creation request submitted successfully")


@router.get("/mine", response_model=ResultOut)
def my_requests(caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    return ResultOut(data=list_my_club_requests(db, caller))
