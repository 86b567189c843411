# backend/planner/documents/schemas.py
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, constr, model_validator

DiscountType = Literal["percentage", "fixed"]


# ---------- Line inputs ----------

class CustomLineIn(BaseModel):
    """Ad-hoc service that is not in the catalog."""
    id: Optional[str] = None
    name_en: Optional[str] = None
    name_ar: Optional[str] = None
    price: Decimal = Field(0, ge=0)
    discount: Decimal = Field(0, ge=0)
    discount_type: DiscountType = "percentage"


class PricingIn(BaseModel):
    """
    Pricing block shared by quotations, campaign plans and contracts.

    services / packages: ordered catalog ids (a repeated id gives one line each)
    services_pricing / packages_pricing: {id: price} overrides of the catalog price.
        On update without the id list, the map is merged over the stored unit
        prices (unnamed ids keep theirs); null resets every line to the catalog
        price. Sending the id list replaces lines and overrides together.
    overridden_total: manual total; null = use the computed one
    """
    services: Optional[List[int]] = None
    services_pricing: Optional[Dict[int, Decimal]] = None
    packages: Optional[List[int]] = None
    packages_pricing: Optional[Dict[int, Decimal]] = None
    custom_services: Optional[List[CustomLineIn]] = None

    discount_value: Decimal = Field(0, ge=0)
    discount_type: DiscountType = "percentage"
    overridden_total: Optional[Decimal] = Field(None, ge=0)


# ---------- Terms ----------

class TermEntryIn(BaseModel):
    order: int = Field(0, ge=0)
    is_custom: bool = False
    term_id: Optional[int] = None
    custom_key: Optional[str] = None
    custom_key_ar: Optional[str] = None
    custom_value: Optional[str] = None
    custom_value_ar: Optional[str] = None


class TermOrderIn(BaseModel):
    id: int
    order: int = Field(..., ge=0)


class TermReorderIn(BaseModel):
    terms: List[TermOrderIn] = Field(..., min_length=1)


# ---------- Quotation ----------

class QuotationIn(PricingIn):
    """Create and update body; on update only the fields sent are applied."""
    client_id: Optional[int] = None
    client_name: Optional[str] = None
    note: Optional[str] = None
    valid_until: Optional[date] = None


class ConvertToContractIn(BaseModel):
    start_date: date
    end_date: date
    contract_body: Optional[str] = None
    contract_body_ar: Optional[str] = None
    terms: Optional[List[TermEntryIn]] = None

    @model_validator(mode="after")
    def _dates_ok(self):
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


# ---------- Campaign plan ----------

class ObjectiveIn(BaseModel):
    name: constr(strip_whitespace=True, min_length=1)
    ar: constr(strip_whitespace=True, min_length=1)
    description: Optional[str] = None
    description_ar: Optional[str] = None


class CampaignCreate(PricingIn):
    client_id: int
    segments: Optional[List[int]] = None
    competitors: Optional[List[int]] = None
    branches: Optional[List[int]] = None
    description: Optional[str] = None
    objectives: Optional[List[ObjectiveIn]] = None
    budget: Optional[Decimal] = Field(None, ge=0)


class CampaignUpdate(CampaignCreate):
    client_id: Optional[int] = None


# ---------- Contract ----------

class ContractCreate(PricingIn):
    client_id: Optional[int] = None
    client_name: Optional[str] = None
    client_name_ar: Optional[str] = None
    quotation_id: Optional[int] = None
    package_id: Optional[int] = None
    campaign_plan_id: Optional[int] = None
    start_date: date
    end_date: date
    contract_body: Optional[str] = None
    contract_body_ar: Optional[str] = None
    note: Optional[str] = None
    terms: Optional[List[TermEntryIn]] = None

    @model_validator(mode="after")
    def _contract_ok(self):
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        if not (self.package_id or self.campaign_plan_id or self.quotation_id):
            raise ValueError("At least one of package_id, campaign_plan_id, or quotation_id is required")
        return self


class ContractUpdate(PricingIn):
    client_id: Optional[int] = None
    client_name: Optional[str] = None
    client_name_ar: Optional[str] = None
    quotation_id: Optional[int] = None
    package_id: Optional[int] = None
    campaign_plan_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    contract_body: Optional[str] = None
    contract_body_ar: Optional[str] = None
    note: Optional[str] = None
    terms: Optional[List[TermEntryIn]] = None


class SignIn(BaseModel):
    signed_date: Optional[date] = None


class CancelIn(BaseModel):
    reason: Optional[str] = None


class RenewIn(BaseModel):
    new_start_date: date
    new_end_date: date
    new_value: Optional[Decimal] = Field(None, ge=0)

    @model_validator(mode="after")
    def _dates_ok(self):
        if self.new_end_date <= self.new_start_date:
            raise ValueError("end_date must be after start_date")
        return self


# ---------- Outputs ----------

class LineOut(BaseModel):
    source: str
    kind: Optional[str] = None
    ref_id: Optional[int] = None
    key: Optional[str] = None
    name_en: Optional[str] = None
    name_ar: Optional[str] = None
    unit_price: Decimal
    discount_value: Decimal
    discount_type: str
    amount: Decimal


class PricedOut(BaseModel):
    id: int
    lines: List[LineOut] = []
    custom_lines: List[LineOut] = []
    discount_value: Decimal
    discount_type: str
    subtotal: Decimal
    total: Decimal
    overridden_total: Optional[Decimal] = None
    is_total_overridden: bool
    status: str
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class QuotationOut(PricedOut):
    quotation_number: str
    client_id: Optional[int] = None
    client_name: Optional[str] = None
    note: Optional[str] = None
    valid_until: Optional[date] = None
    sent_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None


class CampaignOut(PricedOut):
    plan_number: Optional[str] = None
    client_id: int
    segment_ids: List[int] = []
    competitor_ids: List[int] = []
    branch_ids: List[int] = []
    description: Optional[str] = None
    objectives: List[ObjectiveIn] = []
    budget: Optional[Decimal] = None


class TermEntryOut(BaseModel):
    id: int
    order: int
    is_custom: bool
    term_id: Optional[int] = None
    custom_key: Optional[str] = None
    custom_key_ar: Optional[str] = None
    custom_value: Optional[str] = None
    custom_value_ar: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ContractOut(PricedOut):
    contract_number: str
    client_id: Optional[int] = None
    client_name: Optional[str] = None
    client_name_ar: Optional[str] = None
    quotation_id: Optional[int] = None
    package_id: Optional[int] = None
    campaign_plan_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    contract_body: Optional[str] = None
    contract_body_ar: Optional[str] = None
    note: Optional[str] = None
    signed_date: Optional[date] = None
    terms: List[TermEntryOut] = []
