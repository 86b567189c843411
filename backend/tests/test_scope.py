# backend/tests/test_scope.py
import pytest

from fakes import FakeScoped
from planner.engine.errors import CrossTenantError, NotFoundError
from planner.engine.scope import ScopedKind, ScopeValidator, validate_scoped


def _validator():
    return ScopeValidator(
        FakeScoped(
            segments={1: 100, 2: 100, 3: 200},
            competitors={5: 100},
            branches={9: 200},
        )
    )


def test_empty_ids_succeed_without_lookup():
    def lookup(ids):
        raise AssertionError("lookup must not run")

    validate_scoped(100, [], "segments", lookup)


def test_owned_ids_pass():
    _validator().validate(100, ScopedKind.SEGMENTS, [1, 2, 1])


def test_all_missing_ids_reported_with_foreign_ones():
    with pytest.raises(NotFoundError) as exc:
        _validator().validate(100, ScopedKind.SEGMENTS, [1, 3, 40, 41])
    err = exc.value
    assert err.kind == "segments"
    assert err.missing_ids == [40, 41]
    assert err.cross_tenant_ids == [3]


def test_all_foreign_ids_reported():
    with pytest.raises(CrossTenantError) as exc:
        ScopeValidator(FakeScoped(segments={1: 200, 2: 100, 3: 300})).validate(
            100, ScopedKind.SEGMENTS, [1, 2, 3]
        )
    assert exc.value.ids == [1, 3]
    assert exc.value.to_dict()["code"] == "CROSS_TENANT_REFERENCE"


def test_validate_all_checks_every_kind():
    with pytest.raises(CrossTenantError) as exc:
        _validator().validate_all(
            100,
            {ScopedKind.SEGMENTS: [1], ScopedKind.COMPETITORS: [5], ScopedKind.BRANCHES: [9]},
        )
    assert exc.value.kind == "branches"


def test_null_client_owns_nothing():
    with pytest.raises(CrossTenantError):
        _validator().validate(None, ScopedKind.SEGMENTS, [1])
