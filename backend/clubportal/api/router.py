from fastapi import APIRouter
from clubportal.modules.admin import api as admin
from clubportal.modules.auth import api as auth
from clubportal.modules.club_requests import api as club_requests
from clubportal.modules.membership import api as membership
from clubportal.modules.roles import api as roles

router = APIRouter()
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(roles.router, prefix="/roles", tags=["roles"])
router.include_router(club_requests.router, prefix="/club-requests", tags=["club-requests"])
router.include_router(membership.router, prefix="", tags=["membership"])
router.include_router(admin.router, prefix="/admin", tags=["admin"])
