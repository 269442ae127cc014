"""
Service-layer exceptions.

Each class carries a short ``code`` so whatever transport hosts the
services can map it to a client or server error without inspecting
messages.
"""


class ServiceError(Exception):
    """Base class for every error raised by the service layer."""

    code = "service_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(ServiceError):
    """Raised when a command targets an entity that does not exist."""

    code = "not_found"

    def __init__(self, entity: str, entity_id) -> None:
        super().__init__(f"{entity} with ID {entity_id} not found.")
        self.entity = entity
        self.entity_id = entity_id


class InvalidArgumentError(ServiceError):
    code = "invalid_argument"


class InternalServiceError(ServiceError):
    """A collaborator the operation relies on was missing or unusable."""

    code = "internal_error"
