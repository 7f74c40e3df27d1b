"""Domain and infrastructure exceptions for medbox-dispatch."""

from __future__ import annotations


class MedboxError(Exception):
    """Root exception for the dispatch engine."""


class DomainError(MedboxError):
    """Base class for all domain-related errors."""


class InvariantViolationError(DomainError):
    """Raised when a domain invariant is violated."""


class PlanValidationError(DomainError):
    """Raised when a dispense plan cannot be created from the given input."""


class ReschedulingImpossibleError(DomainError):
    """Raised when a recurring plan has no computable next occurrence."""

    def __init__(self, reason: str, plan_id: str | None = None) -> None:
        self.reason = reason
        self.plan_id = plan_id
        super().__init__(f"Cannot reschedule plan {plan_id!r}: {reason}")


class InfrastructureError(MedboxError):
    """Base class for all infrastructure-related errors."""


class PersistenceError(InfrastructureError):
    """Base class for all persistence-related errors."""


class EntityNotFoundError(PersistenceError):
    """Raised when a specific document cannot be found by ID."""

    def __init__(self, entity_type: str, entity_id: object) -> None:
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with id={entity_id!r} not found")
