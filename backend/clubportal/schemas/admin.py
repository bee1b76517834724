from datetime import datetime

from pydantic import BaseModel


class AdminClubOut(BaseModel):
    id: int
    name: str
    description: str
    staff_advisor: str
    access_code: str
    is_active: bool
    current_president_id: int | None = None
    president_first_name: str | None = None
    president_last_name: str | None = None
    member_count: int
    created_at: datetime


class AdminUserOut(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    is_active: bool
    created_at: datetime
    last_login_at: datetime | None = None
    club_count: int
