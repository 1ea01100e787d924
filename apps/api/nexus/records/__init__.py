from nexus.records.accounts import Company, CompanyDraft, SavedCard, SubscriptionPayment, User, UserDraft
from nexus.records.base import EntityKind, Record, RecordDraft, TenantScopedRecord, new_record_id, utcnow
from nexus.records.crm import ChatMessage, Client, ClientDraft, Lead, LeadDraft, Partner, PartnerDraft
from nexus.records.finance import Transaction, TransactionDraft
from nexus.records.projects import Activity, Payment, Project, ProjectDraft, generate_payment_schedule
from nexus.records.saas import SaaSPlan, SaaSProduct, SaaSProductDraft

RECORD_TYPES: dict[EntityKind, type[TenantScopedRecord]] = {
    EntityKind.USERS: User,
    EntityKind.CLIENTS: Client,
    EntityKind.PARTNERS: Partner,
    EntityKind.PROJECTS: Project,
    EntityKind.SAAS_PRODUCTS: SaaSProduct,
    EntityKind.LEADS: Lead,
    EntityKind.TRANSACTIONS: Transaction,
}

DRAFT_TYPES: dict[EntityKind, type[RecordDraft]] = {
    EntityKind.USERS: UserDraft,
    EntityKind.CLIENTS: ClientDraft,
    EntityKind.PARTNERS: PartnerDraft,
    EntityKind.PROJECTS: ProjectDraft,
    EntityKind.SAAS_PRODUCTS: SaaSProductDraft,
    EntityKind.LEADS: LeadDraft,
    EntityKind.TRANSACTIONS: TransactionDraft,
}

ScopedRecord = User | Client | Partner | Project | SaaSProduct | Lead | Transaction

COMPANIES = "companies"


def parse_document(collection: str, document: dict) -> Record:
    """Rebuild a stored record from its JSON document."""
    if collection == COMPANIES:
        return Company.model_validate(document)
    return RECORD_TYPES[EntityKind(collection)].model_validate(document)


__all__ = [
    "Activity",
    "ChatMessage",
    "Client",
    "COMPANIES",
    "ClientDraft",
    "Company",
    "CompanyDraft",
    "DRAFT_TYPES",
    "EntityKind",
    "Lead",
    "LeadDraft",
    "Partner",
    "PartnerDraft",
    "Payment",
    "Project",
    "ProjectDraft",
    "RECORD_TYPES",
    "Record",
    "RecordDraft",
    "SaaSPlan",
    "SaaSProduct",
    "SaaSProductDraft",
    "SavedCard",
    "ScopedRecord",
    "SubscriptionPayment",
    "TenantScopedRecord",
    "Transaction",
    "TransactionDraft",
    "User",
    "UserDraft",
    "generate_payment_schedule",
    "parse_document",
    "new_record_id",
    "utcnow",
]
