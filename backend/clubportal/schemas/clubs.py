from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


RequestStatus = Literal["pending", "approved", "rejected"]


class ClubRequestCreateIn(BaseModel):
    club_name: str = Field(..., min_length=1, max_length=120)
    president_name: str = Field(..., min_length=1, max_length=120)
    description: str = ""
    staff_advisor: str = ""
    requester_comment: str = ""


class ClubRequestOut(BaseModel):
    id: int
    requested_by: int
    club_name: str
    description: str
    staff_advisor: str
    president_name: str
    requester_comment: str
    status: RequestStatus
    rejection_reason: str | None = None
    reviewed_at: datetime | None = None
    created_club_id: int | None = None
    created_at: datetime


class PendingClubRequestOut(ClubRequestOut):
    email: str
    requester_first_name: str
    requester_last_name: str


class ClubApprovedOut(BaseModel):
    club_id: int
    access_code: str
