from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Literal

from pydantic import Field

from nexus.records.base import EntityKind, RecordDraft, TenantScopedRecord


TransactionStatus = Literal["Paid", "Pending", "Overdue"]


class Transaction(TenantScopedRecord):
    """Manually entered income not tied to a project schedule (updates, maintenance, ad-hoc consulting)."""

    kind = EntityKind.TRANSACTIONS
    id_prefix = "txn"

    description: str
    amount: Decimal
    date: dt.date
    status: TransactionStatus = "Pending"
    category: str = ""


class TransactionDraft(RecordDraft):
    description: str = Field(min_length=1)
    amount: Decimal
    date: dt.date
    status: TransactionStatus = "Pending"
    category: str = ""
