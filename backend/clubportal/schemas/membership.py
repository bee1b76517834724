from datetime import datetime

from pydantic import BaseModel, Field


class JoinRequestIn(BaseModel):
    access_code: str = Field(..., min_length=1, max_length=32)
    message: str = ""


class JoinRequestCreatedOut(BaseModel):
    request_id: int
    club_id: int
    club_name: str


class PendingJoinRequestOut(BaseModel):
    id: int
    club_id: int
    user_id: int
    access_code_used: str
    message: str
    created_at: datetime
    email: str
    first_name: str
    last_name: str


class JoinApproveIn(BaseModel):
    role_id: int


class MemberOut(BaseModel):
    user_id: int
    email: str
    first_name: str
    last_name: str
    role_id: int
    role_name: str
    is_president: bool
    joined_at: datetime


class MyClubOut(BaseModel):
    id: int
    name: str
    description: str
    access_code: str
    is_president: bool
    role_id: int
    role_name: str
