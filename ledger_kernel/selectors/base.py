"""
Module: ledger_kernel.selectors.base
Responsibility: Abstract base class for read-only query selectors.
Architecture position: Kernel > Selectors.  May import from db/, models/ and
    the pure domain/ package.  MUST NOT import from services/.

Invariants enforced:
    - Read-only: selectors never add, delete, flush or commit.
    - Tenant scope: every query filters on the selector's tenant_id.
    - DTO return convention: selectors return frozen dataclasses, never ORM
      instances.

Audit relevance:
    Selectors are the only read path for balances.  Nothing is read from a
    stored balance; every figure is derived from journal lines.
"""

from abc import ABC
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for tenant-scoped selectors.

    Non-goals:
        - Does NOT manage transactions; the caller owns the session.
    """

    def __init__(self, session: Session, tenant_id: UUID):
        self.session = session
        self.tenant_id = tenant_id
