from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from nexus.platform.tenancy.coordinator import MutationCoordinator
from nexus.platform.tenancy.errors import RecordNotFound
from nexus.platform.tenancy.identity import IdentityContext
from nexus.records import EntityKind, Project, utcnow
from nexus.records.projects import PaymentStatus


@dataclass(slots=True)
class ProjectService:
    coordinator: MutationCoordinator

    async def update_payment_status(
        self,
        ctx: IdentityContext,
        project_id: str,
        payment_id: str,
        status: PaymentStatus,
        now: datetime | None = None,
    ) -> Project:
        project = self.coordinator.store.get(EntityKind.PROJECTS, project_id)
        if project is None:
            raise RecordNotFound(EntityKind.PROJECTS.value, project_id)
        if not any(payment.id == payment_id for payment in project.payments):
            raise RecordNotFound("payments", payment_id)

        paid_date = (now or utcnow()) if status == "Paid" else None
        payments = tuple(
            payment.model_copy(update={"status": status, "paid_date": paid_date}) if payment.id == payment_id else payment
            for payment in project.payments
        )
        return await self.coordinator.update(ctx, project.model_copy(update={"payments": payments}))
