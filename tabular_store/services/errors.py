"""Service-level errors."""


class ServiceError(Exception):
    """Base class for service errors."""
    pass


class EntityNotFoundError(ServiceError):
    """Raised when an operation needs an entity that does not exist."""

    def __init__(self, entity_type: str, entity_id: str):
        super().__init__(f"{entity_type} not found: {entity_id}")
        self.entity_type = entity_type
        self.entity_id = entity_id


class EmailAlreadyRegisteredError(ServiceError):
    """Raised when registering an email that already belongs to a user."""

    def __init__(self, email: str):
        super().__init__(f"Email already registered: {email}")
        self.email = email
