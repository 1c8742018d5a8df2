"""
BaseService -- abstract base for all ledger write services.

Responsibility:
    Common constructor: a SQLAlchemy ``Session``, the tenant every query is
    scoped to, and an injectable clock.

Architecture position:
    Kernel > Services.  Write services flush and never commit; the caller
    (PostingService with auto_commit, session_scope(), or the test harness)
    owns commit/rollback.
"""

from abc import ABC
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.db.base import Base
from ledger_kernel.domain.clock import Clock, SystemClock

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for tenant-scoped services.

    Guarantees:
        - Every query a subclass issues filters on ``self.tenant_id``.
        - The service never calls ``session.commit()``.
    """

    def __init__(self, session: Session, tenant_id: UUID, clock: Clock | None = None):
        self.session = session
        self.tenant_id = tenant_id
        self.clock = clock or SystemClock()
