from .exceptions import (
    DomainError,
    EntityNotFoundError,
    InfrastructureError,
    InvariantViolationError,
    MedboxError,
    PersistenceError,
    PlanValidationError,
    ReschedulingImpossibleError,
)

__all__ = [
    "DomainError",
    "EntityNotFoundError",
    "InfrastructureError",
    "InvariantViolationError",
    "MedboxError",
    "PersistenceError",
    "PlanValidationError",
    "ReschedulingImpossibleError",
]
