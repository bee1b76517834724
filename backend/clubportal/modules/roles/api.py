from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clubportal.api.deps import get_caller
from clubportal.db.session import get_db
from clubportal.schemas.common import ResultOut
from clubportal.schemas.roles import (
    PermissionCheckOut,
    RoleAssignIn,
    RoleCreateIn,
    RolePreviewIn,
    RoleUpdateIn,
    SetPresidentIn,
)
from clubportal.services.identity import Caller
from clubportal.services.membership import assign_role, set_president
from clubportal.services.permissions import check_permission
from clubportal.services.roles import (
    create_role,
    delete_role,
    list_roles,
    preview_permissions,
    preview_stored_role,
    update_role,
)

router = APIRouter()


@router.get("", response_model=ResultOut)
def roles_for_club(club_id: int = Query(...), caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    return ResultOut(data=list_roles(db, caller, club_id))


@router.post("", response_model=ResultOut)
def create(payload: RoleCreateIn, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    role_id = create_role(
        db,
        caller,
        club_id=payload.club_id,
        role_name=payload.role_name,
        role_description=payload.role_description,
        permissions=payload.permissions,
    )
    return ResultOut(data={"role_id": role_id}, message="Role created successfully")


@router.get("/check-permission", response_model=ResultOut)
def check(
    club_id: int = Query(...),
    permission: str = Query(..., min_length=1),
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
):
    allowed = check_permission(db, club_id, caller.user_id, permission)
    return ResultOut(data=PermissionCheckOut(has_permission=allowed))


@router.post("/preview", response_model=ResultOut)
def preview_unsaved(payload: RolePreviewIn, caller: Caller = Depends(get_caller)):
    return ResultOut(data=preview_permissions(payload.permissions))


@router.post("/assign", response_model=ResultOut)
def assign(payload: RoleAssignIn, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    assign_role(db, caller, club_id=payload.club_id, user_id=payload.user_id, role_id=payload.role_id)
    return ResultOut(message="Role assigned successfully")


@router.post("/set-president", response_model=ResultOut)
def president(payload: SetPresidentIn, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    set_president(db, caller, club_id=payload.club_id, user_id=payload.user_id)
    return ResultOut(message="President updated successfully")


@router.get("/{role_id}/preview", response_model=ResultOut)
def preview(role_id: int, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    return ResultOut(data=preview_stored_role(db, caller, role_id=role_id))


@router.patch("/{role_id}", response_model=ResultOut)
def update(role_id: int, payload: RoleUpdateIn, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    update_role(
        db,
        caller,
        role_id=role_id,
        role_name=payload.role_name,
        role_description=payload.role_description,
        permissions=payload.permissions,
    )
    return ResultOut(message="Role updated successfully")


@router.delete("/{role_id}", response_model=ResultOut)
def delete(role_id: int, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    delete_role(db, caller, role_id=role_id)
    return ResultOut(message="Role deleted successfully")
