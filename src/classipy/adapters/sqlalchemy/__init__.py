"""SQLAlchemy adapter package for classipy."""

from __future__ import annotations

from .mappings import mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyClassificationRepository,
    SqlAlchemyEquivalentConceptsRepository,
    SqlAlchemyRelationshipChangeRepository,
)
from .unit_of_work import (
    SqlAlchemyClassificationUnitOfWork,
    StartupError,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyClassificationRepository",
    "SqlAlchemyClassificationUnitOfWork",
    "SqlAlchemyEquivalentConceptsRepository",
    "SqlAlchemyRelationshipChangeRepository",
    "StartupError",
    "mapper_registry",
    "is_started",
    "shutdown",
    "startup",
]
