"""
Service-layer error taxonomy.

Workflows raise these; the HTTP boundary (see ``clubportal.main``) turns each
one into the ``{ok, data, message}`` envelope with the matching status code.
"""


class ServiceError(Exception):
    status_code = 400
    code = "error"
    default_message = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ServiceError):
    status_code = 400
    code = "validation_error"
    default_message = "Invalid request"


class PermissionDenied(ServiceError):
    status_code = 403
    code = "permission_denied"
    default_message = "Permission denied"


class NotFound(ServiceError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class Conflict(ServiceError):
    status_code = 409
    code = "conflict"
    default_message = "Conflict"


class DuplicateRoleName(Conflict):
    code = "duplicate_role_name"
    default_message = "Role name already exists"


class RoleInUse(Conflict):
    code = "role_in_use"
    default_message = "Cannot delete role with active members. Reassign members first."


class AlreadyProcessed(Conflict):
    code = "already_processed"
    default_message = "Request already processed"


class SystemInvariantProtected(ServiceError):
    status_code = 409
    code = "system_invariant_protected"
    default_message = "Operation not allowed"


class SystemRoleProtected(SystemInvariantProtected):
    code = "system_role_protected"
    default_message = "Cannot delete system roles"


class PersistenceFailure(ServiceError):
    status_code = 500
    code = "persistence_failure"
    default_message = "Database error"
