"""
Service layer for Party operations.

Manages customers, vendors, employees and other counterparties that journal
lines may reference, and keeps the derived ``current_balance`` cache.

Returns PartyInfo DTOs instead of ORM entities.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from ledger_kernel.domain.amounts import ZERO, Side, to_decimal
from ledger_kernel.domain.dtos import PartyInfo
from ledger_kernel.exceptions import (
    DuplicateCodeError,
    MissingFieldError,
    PartyNotFoundError,
    ValidationError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.party import Party, PartyType
from ledger_kernel.selectors.running_balance_selector import RunningBalanceSelector
from ledger_kernel.services.base import BaseService

logger = get_logger("services.party")

_UPDATABLE_FIELDS = frozenset({"name", "party_type", "opening_balance", "opening_side", "tax_id"})


class PartyService(BaseService[Party]):
    """
    Service for managing parties.

    Handles creation, updates and deactivation of counterparties.  Journal
    validation (JournalWriter) only accepts active parties of the tenant.
    """

    def _to_dto(self, party: Party) -> PartyInfo:
        return PartyInfo(
            id=party.id,
            party_code=party.party_code,
            party_type=PartyType(party.party_type).value,
            name=party.name,
            is_active=party.is_active,
            opening_balance=party.opening_balance,
            opening_side=party.opening_side,
            current_balance=party.current_balance,
            tax_id=party.tax_id,
        )

    def _get_orm(self, party_id: UUID) -> Party:
        party = self.session.execute(
            select(Party).where(Party.tenant_id == self.tenant_id, Party.id == party_id)
        ).scalar_one_or_none()
        if party is None:
            raise PartyNotFoundError(str(party_id))
        return party

    @staticmethod
    def _validated_opening(amount, side) -> tuple[Decimal, str]:
        amount = to_decimal(amount)
        if amount < ZERO:
            raise ValidationError("opening_balance must not be negative")
        return amount, Side(side).value

    def create_party(
        self,
        party_code: str,
        name: str,
        party_type: PartyType | str,
        actor_id: UUID,
        opening_balance: Decimal | int | str = ZERO,
        opening_side: str = "debit",
        tax_id: str | None = None,
    ) -> PartyInfo:
        """
        Create a new party.

        Raises:
            MissingFieldError: Empty party_code or name.
            DuplicateCodeError: party_code already used by the tenant.
        """
        if not party_code:
            raise MissingFieldError("party_code")
        if not name:
            raise MissingFieldError("name")
        party_type = PartyType(party_type)

        existing = self.session.execute(
            select(Party.id).where(
                Party.tenant_id == self.tenant_id,
                Party.party_code == party_code,
            )
        ).first()
        if existing is not None:
            raise DuplicateCodeError("Party", party_code)

        amount, side = self._validated_opening(opening_balance, opening_side)
        party = Party(
            tenant_id=self.tenant_id,
            party_code=party_code,
            party_type=party_type.value,
            name=name,
            is_active=True,
            opening_balance=amount,
            opening_side=side,
            current_balance=amount if side == Side.DEBIT else -amount,
            tax_id=tax_id,
            created_by_id=actor_id,
        )
        self.session.add(party)
        self.session.flush()

        logger.info(
            "party_created",
            extra={"party_id": str(party.id), "party_code": party_code, "party_type": party_type.value},
        )
        return self._to_dto(party)

    def update_party(self, party_id: UUID, actor_id: UUID, **changes) -> PartyInfo:
        """Change descriptive fields or the opening balance of a party."""
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown party fields: {sorted(unknown)}")

        party = self._get_orm(party_id)
        if "party_type" in changes:
            changes["party_type"] = PartyType(changes["party_type"]).value
        if "opening_balance" in changes or "opening_side" in changes:
            amount, side = self._validated_opening(
                changes.pop("opening_balance", party.opening_balance),
                changes.pop("opening_side", party.opening_side),
            )
            party.opening_balance = amount
            party.opening_side = side
        for field_name, value in changes.items():
            setattr(party, field_name, value)
        party.updated_by_id = actor_id
        self.session.flush()
        return self._to_dto(party)

    def deactivate_party(self, party_id: UUID, actor_id: UUID) -> PartyInfo:
        """New journal lines can no longer reference the party."""
        party = self._get_orm(party_id)
        party.is_active = False
        party.updated_by_id = actor_id
        self.session.flush()
        logger.info("party_deactivated", extra={"party_id": str(party_id)})
        return self._to_dto(party)

    def get_party(self, party_id: UUID) -> PartyInfo:
        return self._to_dto(self._get_orm(party_id))

    def get_by_code(self, party_code: str) -> PartyInfo | None:
        party = self.session.execute(
            select(Party).where(
                Party.tenant_id == self.tenant_id,
                Party.party_code == party_code,
            )
        ).scalar_one_or_none()
        return self._to_dto(party) if party else None

    def list_by_type(self, party_type: PartyType | str | None = None) -> list[PartyInfo]:
        query = select(Party).where(Party.tenant_id == self.tenant_id)
        if party_type is not None:
            query = query.where(Party.party_type == PartyType(party_type).value)
        result = self.session.execute(query.order_by(Party.party_code))
        return [self._to_dto(p) for p in result.scalars().all()]

    def refresh_balance(self, party_id: UUID) -> PartyInfo:
        """
        Recompute the current_balance cache from the party's ledger fold.

        The cache is never read by reports; it exists for listings.
        """
        party = self._get_orm(party_id)
        statement = RunningBalanceSelector(self.session, self.tenant_id).party_ledger(party_id)
        party.current_balance = statement.ledger.closing_balance
        party.balance_refreshed_at = self.clock.now()
        self.session.flush()
        logger.info(
            "party_balance_refreshed",
            extra={
                "party_id": str(party_id),
                "current_balance": str(party.current_balance),
                "line_count": len(statement.ledger.lines),
            },
        )
        return self._to_dto(party)
