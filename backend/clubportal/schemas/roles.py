from pydantic import BaseModel, Field, StrictBool


class RoleCreateIn(BaseModel):
    club_id: int
    role_name: str = Field(..., min_length=1, max_length=80)
    role_description: str = ""
    permissions: dict[str, StrictBool] = Field(default_factory=dict)


class RoleUpdateIn(BaseModel):
    role_name: str | None = Field(default=None, min_length=1, max_length=80)
    role_description: str | None = None
    permissions: dict[str, StrictBool] | None = None


class RoleAssignIn(BaseModel):
    club_id: int
    user_id: int
    role_id: int


class SetPresidentIn(BaseModel):
    club_id: int
    user_id: int


class RoleOut(BaseModel):
    id: int
    club_id: int
    role_name: str
    role_description: str
    is_system_role: bool
    member_count: int
    permissions: dict[str, bool]


class NavEntryOut(BaseModel):
    name: str
    visible: bool = True


class RolePreviewIn(BaseModel):
    permissions: dict[str, StrictBool] = Field(default_factory=dict)


class RolePreviewOut(BaseModel):
    navigation: list[NavEntryOut] = Field(default_factory=list)
    features: list[str] = Field(default_factory=list)


class PermissionCheckOut(BaseModel):
    has_permission: bool
