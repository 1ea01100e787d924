from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Literal, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from nexus.core.periods import add_months
from nexus.records.base import Currency, EntityKind, RecordDraft, TenantScopedRecord


ProjectStatus = Literal["Pending", "In Progress", "Completed", "Overdue"]
ProjectCategory = Literal["Site", "System", "App", "Marketing", "Consulting", "Other"]
PaymentStatus = Literal["Paid", "Pending", "Overdue"]

CENT = Decimal("0.01")


class Payment(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    amount: Decimal
    due_date: date
    paid_date: datetime | None = None
    status: PaymentStatus = "Pending"


class Activity(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    occurred_at: datetime
    description: str


def _payment_id(label: str) -> str:
    return f"pay-{label}-{uuid.uuid4().hex[:12]}"


def generate_payment_schedule(
    total_value: Decimal,
    down_payment: Decimal,
    installments: int,
    start_date: date,
    first_payment_date: date | None = None,
) -> tuple[Payment, ...]:
    """Build the receivables schedule for a new project.

    A positive down payment is due on ``start_date``. The remainder is split into
    ``installments`` monthly payments, rounded to cents, starting on
    ``first_payment_date`` or one month after ``start_date``.
    """
    payments: list[Payment] = []
    remaining = Decimal(total_value) - Decimal(down_payment)

    if down_payment > 0:
        payments.append(
            Payment(
                id=_payment_id("entry"),
                amount=Decimal(down_payment).quantize(CENT, rounding=ROUND_HALF_UP),
                due_date=start_date,
            )
        )

    if installments > 0 and remaining > 0:
        installment_amount = (remaining / installments).quantize(CENT, rounding=ROUND_HALF_UP)
        base_date = first_payment_date or add_months(start_date, 1)
        for index in range(installments):
            payments.append(
                Payment(
                    id=_payment_id(f"inst{index + 1}"),
                    amount=installment_amount,
                    due_date=add_months(base_date, index),
                )
            )

    return tuple(payments)


class Project(TenantScopedRecord):
    kind = EntityKind.PROJECTS
    id_prefix = "proj"

    name: str
    description: str = ""
    category: ProjectCategory = "System"
    client_id: str
    value: Decimal
    down_payment: Decimal = Decimal("0")
    installments: int = 0
    currency: Currency = "BRL"
    first_payment_date: date | None = None
    has_retainer: bool = False
    retainer_value: Decimal | None = None
    assigned_partner_ids: tuple[str, ...] = ()
    start_date: date
    end_date: date
    status: ProjectStatus = "Pending"
    progress: int = Field(default=0, ge=0, le=100)
    payments: tuple[Payment, ...] = ()
    activities: tuple[Activity, ...] = ()

    @classmethod
    def from_draft(  # type: ignore[override]
        cls, draft: ProjectDraft, *, record_id: str, tenant_id: str, now: datetime
    ) -> Self:
        payments = generate_payment_schedule(
            draft.value,
            draft.down_payment,
            draft.installments,
            draft.start_date,
            draft.first_payment_date,
        )
        return cls(
            id=record_id,
            tenant_id=tenant_id,
            status="Pending",
            progress=0,
            activities=(),
            payments=payments,
            **draft.model_dump(),
        )


class ProjectDraft(RecordDraft):
    name: str = Field(min_length=1)
    description: str = ""
    category: ProjectCategory = "System"
    client_id: str
    value: Decimal = Field(ge=0)
    down_payment: Decimal = Field(default=Decimal("0"), ge=0)
    installments: int = Field(default=0, ge=0, le=120)
    currency: Currency = "BRL"
    first_payment_date: date | None = None
    has_retainer: bool = False
    retainer_value: Decimal | None = None
    assigned_partner_ids: list[str] = Field(default_factory=list)
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def _check_dates_and_amounts(self) -> ProjectDraft:
        if self.down_payment > self.value:
            raise ValueError("down_payment cannot exceed project value")
        if self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")
        return self
