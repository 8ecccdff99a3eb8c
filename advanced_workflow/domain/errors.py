"""Domain Errors - Centralized Exception Hierarchy"""
from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base domain error - all errors extend this"""

    error_code: str = "DOMAIN_ERROR"
    http_status: int = 400

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to API response dict"""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details
            }
        }


# Authentication & Authorization Errors
class AuthenticationError(DomainError):
    """Token missing, invalid, or expired"""
    error_code = "AUTHENTICATION_ERROR"
    http_status = 401


class AuthorizationError(DomainError):
    """User lacks permission for action"""
    error_code = "AUTHORIZATION_ERROR"
    http_status = 403


class PermissionDeniedError(AuthorizationError):
    """Specific permission denied"""
    error_code = "PERMISSION_DENIED"


# Validation Errors
class ValidationError(DomainError):
    """Input validation failed"""
    error_code = "VALIDATION_ERROR"
    http_status = 400


class WorkflowValidationError(ValidationError):
    """Workflow definition validation failed"""
    error_code = "WORKFLOW_VALIDATION_ERROR"


class InvalidDefinitionError(ValidationError):
    """Definition cannot be started or loaded (no initial action, unknown types)"""
    error_code = "INVALID_DEFINITION"


# Not Found Errors
class NotFoundError(DomainError):
    """Resource not found"""
    error_code = "NOT_FOUND"
    http_status = 404


class DefinitionNotFoundError(NotFoundError):
    """Workflow definition not found"""
    error_code = "DEFINITION_NOT_FOUND"


class InstanceNotFoundError(NotFoundError):
    """Workflow instance not found"""
    error_code = "INSTANCE_NOT_FOUND"


class ActionRuntimeNotFoundError(NotFoundError):
    """Action runtime record not found"""
    error_code = "ACTION_RUNTIME_NOT_FOUND"


class ActionNotFoundError(NotFoundError):
    """Action definition referenced by a runtime no longer exists"""
    error_code = "ACTION_NOT_FOUND"


# Conflict Errors
class ConflictError(DomainError):
    """Resource conflict (e.g., concurrent modification)"""
    error_code = "CONFLICT"
    http_status = 409


class ConcurrencyError(ConflictError):
    """Optimistic concurrency conflict"""
    error_code = "CONCURRENCY_CONFLICT"


class InvalidStateError(ConflictError):
    """Action not valid for current state"""
    error_code = "INVALID_STATE"


class AlreadyExistsError(ConflictError):
    """Resource already exists"""
    error_code = "ALREADY_EXISTS"


class InstanceNotActiveError(ConflictError):
    """Operation attempted on a complete or cancelled instance"""
    error_code = "INSTANCE_NOT_ACTIVE"


class NoCurrentActionError(ConflictError):
    """Instance has no current action to execute"""
    error_code = "NO_CURRENT_ACTION"


class DanglingTransitionError(ConflictError):
    """Transition target action no longer resolvable"""
    error_code = "DANGLING_TRANSITION"


# Engine Errors
class EngineError(DomainError):
    """Workflow engine error"""
    error_code = "ENGINE_ERROR"
    http_status = 500


class TransitionNotFoundError(EngineError):
    """Transition is not one of the current action's transitions"""
    error_code = "TRANSITION_NOT_FOUND"
    http_status = 400


class UnknownTypeError(EngineError):
    """No behavior, guard or hook registered under the given name"""
    error_code = "UNKNOWN_TYPE"


class TransitionHookError(EngineError):
    """Post-transition hook failed after the transition was committed"""
    error_code = "TRANSITION_HOOK_FAILED"


class AutoAdvanceLimitError(EngineError):
    """Too many consecutive automatic transitions in one execute call"""
    error_code = "AUTO_ADVANCE_LIMIT"
