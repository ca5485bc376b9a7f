"""
Domain error taxonomy.

Every error here is an expected, user-facing failure. They are raised
synchronously from value objects, aggregates and use cases and left for the
calling boundary (the CLI, or whatever adapter wraps the services) to map
to a response.
"""
from typing import Any, Dict, List


class DomainError(Exception):
    """Base class for all ledger domain errors."""

    type = "DomainError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_primitives(self) -> Dict[str, Any]:
        """Serializable view: type, description and the error's own attributes"""
        data = {
            key: value
            for key, value in vars(self).items()
            if key not in ("message", "type") and not key.startswith("_")
        }
        return {
            "type": self.type,
            "description": self.message,
            "data": data,
        }


class InvalidArgumentError(DomainError):
    """Raised when a value object or aggregate is built from malformed input."""

    type = "InvalidArgumentError"


class CurrencyMismatchError(DomainError):
    """Raised when two amounts in different currencies are combined."""

    type = "CurrencyMismatchError"

    def __init__(self, expected: str, actual: str):
        super().__init__(f"Currency mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class EntityDoesNotExistError(DomainError):
    """Raised when a referenced aggregate cannot be found."""

    type = "EntityDoesNotExistError"
    entity = "Entity"

    def __init__(self, entity_id: str):
        super().__init__(f"{self.entity} not found: {entity_id}")
        self.entity_id = entity_id


class AccountDoesNotExistError(EntityDoesNotExistError):
    type = "AccountDoesNotExistError"
    entity = "Account"


class TransactionDoesNotExistError(EntityDoesNotExistError):
    type = "TransactionDoesNotExistError"
    entity = "Transaction"


class CategoryDoesNotExistError(EntityDoesNotExistError):
    type = "CategoryDoesNotExistError"
    entity = "Category"


class UserDoesNotExistError(EntityDoesNotExistError):
    type = "UserDoesNotExistError"
    entity = "User"


class AuthorizationError(DomainError):
    """Raised when an aggregate does not belong to the requesting user."""

    type = "AuthorizationError"

    def __init__(self, resource: str, resource_id: str, user_id: str):
        super().__init__(f"{resource} {resource_id} does not belong to user {user_id}")
        self.resource = resource
        self.resource_id = resource_id
        self.user_id = user_id


class EventPublishError(DomainError):
    """Raised by a strict event bus when one or more subscribers failed."""

    type = "EventPublishError"

    def __init__(self, failures: List[Any]):
        super().__init__(f"{len(failures)} subscriber(s) failed while handling published events")
        self.failures = failures

    def to_primitives(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "description": self.message,
            "data": {"failures": [str(failure) for failure in self.failures]},
        }
