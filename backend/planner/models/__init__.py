# [BEGIN FILE] backend/planner/models/__init__.py
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    Date,
    ForeignKey,
    UniqueConstraint,
    Index,
    CheckConstraint,
    func,
    Numeric,
    Boolean,
    JSON,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

MONEY = Numeric(18, 4)


# =========================
# Users
# =========================
class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, nullable=False)
    password_hash = Column(String, nullable=False)
    full_name = Column(String, nullable=True)
    role_name = Column(String, nullable=False, default="employee")  # admin | manager | employee
    is_active = Column(Boolean, nullable=False, default=True, server_default="1")

    created_at = Column(DateTime, server_default=func.now())

    __table_args__ = (UniqueConstraint("email", name="uix_user_email"),)


# =========================
# Clients (tenants of every scoped entity)
# =========================
class Client(Base):
    __tablename__ = "clients"
    id = Column(Integer, primary_key=True, index=True)
    business_name = Column(String, nullable=False, index=True)
    business_category = Column(String, nullable=True)
    contact_name = Column(String, nullable=True)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    website = Column(String, nullable=True)
    status = Column(String, nullable=False, default="active")  # active | inactive | pending

    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    deleted = Column(Boolean, nullable=False, default=False, server_default="0")

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    segments = relationship("Segment", back_populates="client", lazy="selectin")
    competitors = relationship("Competitor", back_populates="client", lazy="selectin")
    branches = relationship("Branch", back_populates="client", lazy="selectin")


# =========================
# Scoped entities (owned by exactly one client)
# =========================
class Segment(Base):
    __tablename__ = "segments"
    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    age_range = Column(JSON, nullable=False, default=list)
    gender = Column(JSON, nullable=False, default=list)
    area = Column(JSON, nullable=False, default=list)
    governorate = Column(JSON, nullable=False, default=list)
    note = Column(Text, nullable=True)
    product_name = Column(String, nullable=True)
    deleted = Column(Boolean, nullable=False, default=False, server_default="0")

    created_at = Column(DateTime, nullable=False, server_default=func.now())

    client = relationship("Client", back_populates="segments", lazy="selectin")

    __table_args__ = (Index("ix_segments_client", "client_id"),)


class Competitor(Base):
    __tablename__ = "competitors"
    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    swot_strengths = Column(JSON, nullable=False, default=list)
    swot_weaknesses = Column(JSON, nullable=False, default=list)
    swot_opportunities = Column(JSON, nullable=False, default=list)
    swot_threats = Column(JSON, nullable=False, default=list)
    deleted = Column(Boolean, nullable=False, default=False, server_default="0")

    created_at = Column(DateTime, nullable=False, server_default=func.now())

    client = relationship("Client", back_populates="competitors", lazy="selectin")

    __table_args__ = (Index("ix_competitors_client", "client_id"),)


class Branch(Base):
    __tablename__ = "branches"
    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)
    name = Column(String, nullable=False)
    address = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    city = Column(String, nullable=True)
    deleted = Column(Boolean, nullable=False, default=False, server_default="0")

    created_at = Column(DateTime, nullable=False, server_default=func.now())

    client = relationship("Client", back_populates="branches", lazy="selectin")

    __table_args__ = (Index("ix_branches_client", "client_id"),)


# =========================
# Catalog (services / packages / contract terms)
# =========================
class Service(Base):
    __tablename__ = "services"
    id = Column(Integer, primary_key=True, index=True)
    name_en = Column(String, nullable=False)
    name_ar = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=False, default="other")  # photography | web | reels | other

    price = Column(MONEY, nullable=False, default=0)
    discount = Column(MONEY, nullable=False, default=0)
    discount_type = Column(String, nullable=False, default="percentage")

    is_global = Column(Boolean, nullable=False, default=True, server_default="1")
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="SET NULL"), nullable=True)
    deleted = Column(Boolean, nullable=False, default=False, server_default="0")

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_service_price"),
        CheckConstraint("discount >= 0", name="ck_service_discount"),
        Index("ix_services_category", "category"),
        Index("ix_services_client", "client_id"),
    )


class Package(Base):
    __tablename__ = "packages"
    id = Column(Integer, primary_key=True, index=True)
    name_en = Column(String, nullable=False)
    name_ar = Column(String, nullable=False)

    price = Column(MONEY, nullable=False, default=0)
    discount = Column(MONEY, nullable=False, default=0)
    discount_type = Column(String, nullable=False, default="percentage")

    features = Column(JSON, nullable=False, default=list)     # [{en, ar, quantity}]
    service_ids = Column(JSON, nullable=False, default=list)  # member services
    is_active = Column(Boolean, nullable=False, default=True, server_default="1")

    is_global = Column(Boolean, nullable=False, default=True, server_default="1")
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="SET NULL"), nullable=True)
    deleted = Column(Boolean, nullable=False, default=False, server_default="0")

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_package_price"),
        Index("ix_packages_active", "is_active"),
    )


class ContractTerm(Base):
    __tablename__ = "contract_terms"
    id = Column(Integer, primary_key=True, index=True)
    key = Column(String, nullable=False)
    key_ar = Column(String, nullable=False)
    value = Column(Text, nullable=True)
    value_ar = Column(Text, nullable=True)
    deleted = Column(Boolean, nullable=False, default=False, server_default="0")

    created_at = Column(DateTime, nullable=False, server_default=func.now())


# =========================
# Priced documents
# =========================
class PricedColumnsMixin:
    """Columns shared by quotations, campaign plans and contracts."""

    # snapshots of the normalized lines, see documents.common.serialize_line
    lines = Column(JSON, nullable=False, default=list)
    custom_lines = Column(JSON, nullable=False, default=list)

    discount_value = Column(MONEY, nullable=False, default=0)
    discount_type = Column(String, nullable=False, default="percentage")

    subtotal = Column(MONEY, nullable=False, default=0)
    total = Column(MONEY, nullable=False, default=0)
    overridden_total = Column(MONEY, nullable=True)
    is_total_overridden = Column(Boolean, nullable=False, default=False, server_default="0")

    deleted = Column(Boolean, nullable=False, default=False, server_default="0")
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())


class Quotation(PricedColumnsMixin, Base):
    __tablename__ = "quotations"
    id = Column(Integer, primary_key=True, index=True)
    quotation_number = Column(String, nullable=False)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="SET NULL"), nullable=True)
    client_name = Column(String, nullable=True)  # for clients not in the system

    note = Column(Text, nullable=True)
    valid_until = Column(Date, nullable=True)
    status = Column(String, nullable=False, default="draft")  # draft | sent | approved | rejected
    sent_at = Column(DateTime, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    rejected_at = Column(DateTime, nullable=True)

    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    __table_args__ = (
        UniqueConstraint("quotation_number", name="uix_quotation_number"),
        Index("ix_quotations_client_status", "client_id", "status"),
        Index("ix_quotations_client_name", "client_name"),
    )


class CampaignPlan(PricedColumnsMixin, Base):
    __tablename__ = "campaign_plans"
    id = Column(Integer, primary_key=True, index=True)
    plan_number = Column(String, nullable=True)  # filled from the id after flush
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)

    segment_ids = Column(JSON, nullable=False, default=list)
    competitor_ids = Column(JSON, nullable=False, default=list)
    branch_ids = Column(JSON, nullable=False, default=list)

    description = Column(Text, nullable=True)
    objectives = Column(JSON, nullable=False, default=list)  # [{name, ar, description, description_ar}]
    budget = Column(MONEY, nullable=True)
    status = Column(String, nullable=False, default="draft")

    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    __table_args__ = (
        UniqueConstraint("plan_number", name="uix_plan_number"),
        Index("ix_campaign_plans_client", "client_id"),
    )


class Contract(PricedColumnsMixin, Base):
    __tablename__ = "contracts"
    id = Column(Integer, primary_key=True, index=True)
    contract_number = Column(String, nullable=False)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="SET NULL"), nullable=True)
    client_name = Column(String, nullable=True)
    client_name_ar = Column(String, nullable=True)

    quotation_id = Column(Integer, ForeignKey("quotations.id", ondelete="SET NULL"), nullable=True)
    package_id = Column(Integer, ForeignKey("packages.id", ondelete="SET NULL"), nullable=True)
    campaign_plan_id = Column(Integer, ForeignKey("campaign_plans.id", ondelete="SET NULL"), nullable=True)

    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    contract_body = Column(Text, nullable=True)
    contract_body_ar = Column(Text, nullable=True)
    note = Column(Text, nullable=True)

    status = Column(String, nullable=False, default="draft")  # draft | active | completed | cancelled | renewed
    signed_date = Column(Date, nullable=True)

    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    terms = relationship(
        "ContractTermItem",
        back_populates="contract",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ContractTermItem.order",
    )

    __table_args__ = (
        UniqueConstraint("contract_number", name="uix_contract_number"),
        Index("ix_contracts_client", "client_id"),
    )


class ContractTermItem(Base):
    __tablename__ = "contract_term_items"
    id = Column(Integer, primary_key=True, index=True)
    contract_id = Column(Integer, ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False)

    order = Column("sort_order", Integer, nullable=False)
    is_custom = Column(Boolean, nullable=False, default=False)
    term_id = Column(Integer, ForeignKey("contract_terms.id", ondelete="SET NULL"), nullable=True)
    custom_key = Column(String, nullable=True)
    custom_key_ar = Column(String, nullable=True)
    custom_value = Column(Text, nullable=True)
    custom_value_ar = Column(Text, nullable=True)

    contract = relationship("Contract", back_populates="terms", lazy="selectin")
    term = relationship("ContractTerm", lazy="selectin")

    __table_args__ = (
        CheckConstraint("sort_order >= 0", name="ck_term_item_order"),
        Index("ix_term_items_contract", "contract_id"),
        Index("ix_term_items_term", "term_id"),
    )


# =========================
# Audit log
# =========================
class AuditLog(Base):
    __tablename__ = "audit_logs"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action = Column(String, nullable=False)        # create | update | delete | convert_to_contract | ...
    entity_type = Column(String, nullable=False)   # Quotation | CampaignPlan | Contract | ...
    entity_id = Column(Integer, nullable=True)
    changes = Column(JSON, nullable=True)
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())

    __table_args__ = (Index("ix_audit_entity", "entity_type", "entity_id"),)
