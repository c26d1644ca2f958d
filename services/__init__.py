"""
Services package for BizDesk.
Contains repository classes for database access and the pure business
logic (pricing, agenda, dashboard, documents) they build on.

Modules are imported directly (``from services.pricing import Cart``);
this package deliberately re-exports only the exception types, because
database.connection depends on them.
"""

from services.exceptions import (
    BusinessError,
    ValidationError,
    BudgetLockedError,
    InvalidTransitionError,
    ReferentialIntegrityError,
    InsufficientStock,
    NotFoundError,
    PersistenceError,
    AuthError,
)

__all__ = [
    'BusinessError',
    'ValidationError',
    'BudgetLockedError',
    'InvalidTransitionError',
    'ReferentialIntegrityError',
    'InsufficientStock',
    'NotFoundError',
    'PersistenceError',
    'AuthError',
]
