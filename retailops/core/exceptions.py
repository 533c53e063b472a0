"""
Domain exceptions
Every error raised by the service layer carries a stable code and the HTTP
status the boundary should answer with. Routes never re-interpret them.
"""
from typing import Any, Optional


class DomainError(Exception):
    """
    Base class for typed domain errors

    Attributes:
        code: Stable machine-readable error code
        status_code: HTTP status the API layer maps this error to
        message: User-visible message
        details: Extra response fields (never used to leak scope information)
    """
    code: str = "DOMAIN_ERROR"
    status_code: int = 400
    default_message: str = "Request could not be processed"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message or self.default_message
        if code:
            self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_response(self) -> dict[str, Any]:
        """Body returned to API clients"""
        return {"error": self.message, "code": self.code, **self.details}


class UnauthorizedError(DomainError):
    """No identity on the request"""
    code = "UNAUTHORIZED"
    status_code = 401
    default_message = "Unauthorized"


class ForbiddenError(DomainError):
    """Identity present but role or scope is insufficient"""
    code = "FORBIDDEN"
    status_code = 403
    default_message = "Forbidden"


class NoBoutiqueAssignedError(ForbiddenError):
    code = "NO_BOUTIQUE"
    default_message = "Account not assigned to a boutique"


class EmployeeOutOfScopeError(ForbiddenError):
    """
    Target employee(s) belong to a boutique outside the caller's scope

    The offending ids are kept on the exception for audit logging only; the
    response stays a generic "Forbidden".
    """
    code = "CROSS_BOUTIQUE_BLOCKED"

    def __init__(self, emp_id: Optional[str] = None, invalid_emp_ids: Optional[list[str]] = None,
                 boutique_ids: Optional[list[str]] = None, actor_user_id: Optional[str] = None,
                 module: str = "general"):
        super().__init__()
        self.emp_id = emp_id
        self.invalid_emp_ids = invalid_emp_ids or ([emp_id] if emp_id else [])
        self.boutique_ids = boutique_ids or []
        self.actor_user_id = actor_user_id
        self.module = module

    def audit_fields(self) -> dict[str, Any]:
        """AuditLog columns describing the blocked attempt"""
        return {
            "actor_user_id": self.actor_user_id,
            "action": self.code,
            "module": self.module,
            "entity_type": "employee",
            "entity_id": self.emp_id,
            "after_json": {"invalidEmpIds": self.invalid_emp_ids, "boutiqueIds": self.boutique_ids},
        }


class ScheduleLockedError(DomainError):
    """Schedule mutation refused because the day or week is locked"""
    code = "DAY_LOCKED"
    status_code = 403
    default_message = "Schedule is locked"

    def __init__(self, code: str, message: str, lock_info: Optional[dict[str, Any]] = None):
        self.lock_info = lock_info or {}
        super().__init__(message, code=code, details={"lock": self.lock_info})


class StateConflictError(DomainError):
    """Transition not allowed from the entity's current state"""
    code = "INVALID_TRANSITION"
    status_code = 409
    default_message = "Conflict with current state"


class LedgerNotBalancedError(StateConflictError):
    code = "DIFF_NOT_ZERO"
    default_message = "Lines total must equal summary total (diff must be 0)"

    def __init__(self, diff: int):
        self.diff = diff
        super().__init__(details={"diff": diff})


class ValidationError(DomainError):
    """Caller-supplied input is malformed"""
    code = "VALIDATION_ERROR"
    status_code = 400
    default_message = "Invalid input"

    def __init__(self, message: Optional[str] = None, *, field: Optional[str] = None,
                 code: Optional[str] = None):
        self.field = field
        details = {"field": field} if field else None
        super().__init__(message, code=code, details=details)


class NotFoundError(DomainError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Not found"


class InvariantViolationError(DomainError):
    """
    A structural invariant (allocation sum, cascade completeness) broke.
    This is a bug: never caught and corrected by callers.
    """
    code = "INVARIANT_VIOLATION"
    status_code = 500
    default_message = "Internal invariant violated"
