from clubportal.models.user import User
from clubportal.models.club import Club, ClubCreationRequest
from clubportal.models.role import ClubRole, RolePermission
from clubportal.models.membership import ClubMember, ClubJoinRequest
from clubportal.models.chat import ChatRoom, ChatRoomMember
from clubportal.models.audit_log import AuditLog
