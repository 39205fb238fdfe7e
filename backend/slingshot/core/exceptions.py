"""
Custom exception hierarchy for domain-specific errors.

Services raise domain exceptions; callers decide how to surface them. User
errors carry a message meant for the person who started the deploy and abort
an execution immediately.
"""
from typing import Optional, Dict, Any, List


class DomainException(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


# =============================================================================
# Not Found Errors
# =============================================================================

class NotFoundError(DomainException):
    """Base class for resource not found errors."""
    pass


class DeployNotFoundError(NotFoundError):
    """Deploy does not exist."""

    def __init__(self, identifier: str):
        super().__init__(f"Deploy not found: {identifier}", {"identifier": identifier})


class ExecutionNotFoundError(NotFoundError):
    """No active execution for a deploy."""

    def __init__(self, deploy_id: str):
        super().__init__(f"No active execution for deploy: {deploy_id}", {"deploy_id": deploy_id})


# =============================================================================
# Conflict Errors
# =============================================================================

class AlreadyExistsError(DomainException):
    """Base class for resource already exists errors."""
    pass


class UniquenessConflictError(AlreadyExistsError):
    """A concurrent writer inserted a conflicting row first."""

    def __init__(self, resource: str, reason: str):
        super().__init__(
            f"Conflicting {resource}: {reason}",
            {"resource": resource, "reason": reason}
        )


class ExecutionAlreadyRunningError(AlreadyExistsError):
    """Deploy already has an active execution."""

    def __init__(self, deploy_id: str):
        super().__init__(f"Deploy {deploy_id} is already executing", {"deploy_id": deploy_id})


# =============================================================================
# Validation Errors
# =============================================================================

class ValidationError(DomainException):
    """Base class for validation errors."""
    pass


class UserError(ValidationError):
    """
    Error caused by the deploy request or its inputs.

    The message is shown verbatim in the deploy output.
    """
    pass


class BuildNotUsableError(UserError):
    """The build for a revision cannot be deployed."""

    def __init__(self, message: str, build_url: str, status: Optional[str] = None):
        super().__init__(message, {"build_url": build_url, "status": status})


class ReleaseValidationError(UserError):
    """A release could not be created because its docs are invalid."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(f"Failed to create release: {self.errors}", {"errors": self.errors})


# =============================================================================
# Service Unavailable
# =============================================================================

class ServiceUnavailableError(DomainException):
    """External service is unavailable."""

    def __init__(self, service: str, reason: str = "Service unavailable"):
        super().__init__(f"{service}: {reason}", {"service": service, "reason": reason})


class ClusterQueryError(ServiceUnavailableError):
    """The cluster API failed or returned something unparseable."""

    def __init__(self, cluster: str, reason: str):
        super().__init__(f"Kubernetes cluster {cluster}", reason)
        self.details["cluster"] = cluster


class DeploysDisabledError(ServiceUnavailableError):
    """Deploy executions are switched off for this process."""

    def __init__(self):
        super().__init__("Deploy executor", "deploys are disabled")
