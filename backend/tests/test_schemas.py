# backend/tests/test_schemas.py
import pytest

from planner.api.audit import AuditOut
from planner.api.auth import UserOut
from planner.api.clients import ClientOut
from planner.api.contract_terms import TermOut
from planner.api.packages import PackageOut
from planner.api.scoped import BranchOut, CompetitorOut, SegmentOut
from planner.api.services import ServiceOut
from planner.api.users import UserDetailOut
from planner.core.config import Settings
from planner.documents.schemas import ContractOut, PricedOut, QuotationOut, TermEntryOut
from planner.models import User

ORM_MODELS = [
    AuditOut,
    UserOut,
    UserDetailOut,
    ClientOut,
    TermOut,
    PackageOut,
    ServiceOut,
    SegmentOut,
    CompetitorOut,
    BranchOut,
    PricedOut,
    QuotationOut,
    ContractOut,
    TermEntryOut,
]


@pytest.mark.parametrize("model", ORM_MODELS, ids=lambda m: m.__name__)
def test_orm_schemas_use_config_dict(model):
    # a nested ``class Config`` is the deprecated v1 spelling
    assert "Config" not in vars(model)
    assert model.model_config.get("from_attributes") is True


def test_settings_use_settings_config_dict():
    assert "Config" not in vars(Settings)
    assert Settings.model_config["env_file"] == ".env"
    assert Settings.model_config["case_sensitive"] is True


def test_user_schema_reads_orm_row():
    row = User(id=5, email="desk@agency.io", password_hash="x", full_name="Desk", role_name="employee", is_active=True)
    out = UserDetailOut.model_validate(row)
    assert out.email == "desk@agency.io"
    assert out.is_active is True
