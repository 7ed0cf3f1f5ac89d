import uuid

import pytest

from app.pharmops.core.error_catalog import ErrorCatalog
from app.pharmops.core.exceptions import AuthorizationGapError
from app.pharmops.core.scope import (
    MATCH_NOTHING,
    NO_MATCH_ID,
    UNRESTRICTED,
    Role,
    ScopeFilter,
    ScopingLevel,
    can_access_branch,
    can_access_pharmacy,
    resolve,
)
from tests.expired_sales_helpers import tenant_context

P1 = str(uuid.uuid4())
B1 = str(uuid.uuid4())


@pytest.mark.parametrize(
    ("role", "level", "expected"),
    [
        (Role.SUPER_ADMIN, ScopingLevel.UNRESTRICTED, {}),
        (Role.SUPER_ADMIN, ScopingLevel.PHARMACY_WIDE, {}),
        (Role.SUPER_ADMIN, ScopingLevel.BRANCH_LEVEL, {}),
        (Role.ADMIN, ScopingLevel.UNRESTRICTED, {"pharmacy_id": P1}),
        (Role.ADMIN, ScopingLevel.PHARMACY_WIDE, {"pharmacy_id": P1}),
        (Role.ADMIN, ScopingLevel.BRANCH_LEVEL, {"pharmacy_id": P1}),
        (Role.PHARMACIST, ScopingLevel.UNRESTRICTED, {"pharmacy_id": P1}),
        (Role.PHARMACIST, ScopingLevel.PHARMACY_WIDE, {"pharmacy_id": P1}),
        (Role.PHARMACIST, ScopingLevel.BRANCH_LEVEL, {"pharmacy_id": P1, "branch_id": B1}),
        (Role.CASHIER, ScopingLevel.UNRESTRICTED, {"pharmacy_id": P1}),
        (Role.CASHIER, ScopingLevel.PHARMACY_WIDE, {"pharmacy_id": P1}),
        (Role.CASHIER, ScopingLevel.BRANCH_LEVEL, {"pharmacy_id": P1, "branch_id": B1}),
    ],
)
def test_resolution_table(role, level, expected):
    context = tenant_context(role.value, pharmacy_id=P1, branch_id=B1)

    assert resolve(context, level).as_dict() == expected


def test_admin_branch_request_collapses_to_pharmacy():
    context = tenant_context("admin", pharmacy_id=P1, branch_id=B1)

    scope = resolve(context, ScopingLevel.BRANCH_LEVEL)

    assert scope == ScopeFilter(pharmacy_id=P1)
    assert scope.branch_id is None


def test_superadmin_is_unrestricted_even_with_assignments():
    context = tenant_context("super_admin", pharmacy_id=P1, branch_id=B1)

    assert resolve(context, ScopingLevel.BRANCH_LEVEL) is UNRESTRICTED


def test_role_names_are_case_insensitive():
    context = tenant_context("CASHIER", pharmacy_id=P1, branch_id=B1)

    assert resolve(context, ScopingLevel.BRANCH_LEVEL) == ScopeFilter(pharmacy_id=P1, branch_id=B1)


@pytest.mark.parametrize("role", ["auditor", "", "superadmin"])
def test_unknown_role_matches_nothing(role):
    context = tenant_context("cashier", pharmacy_id=P1, branch_id=B1)
    context = type(context)(role=role, user_id=context.user_id, pharmacy_id=P1, branch_id=B1)

    scope = resolve(context, ScopingLevel.BRANCH_LEVEL)

    assert scope is MATCH_NOTHING
    assert scope.matches_nothing
    assert scope.pharmacy_id == NO_MATCH_ID
    assert not scope.matches(P1, B1)


def test_branch_filter_implies_pharmacy_filter():
    for role in ("pharmacist", "cashier"):
        scope = resolve(tenant_context(role, pharmacy_id=P1, branch_id=B1), ScopingLevel.BRANCH_LEVEL)
        assert scope.branch_id == B1
        assert scope.pharmacy_id == P1


def test_missing_fields_are_omitted_in_permissive_mode():
    context = tenant_context("cashier", pharmacy_id=P1)

    scope = resolve(context, ScopingLevel.BRANCH_LEVEL)

    assert scope.as_dict() == {"pharmacy_id": P1}


def test_missing_fields_raise_in_strict_mode():
    context = tenant_context("cashier", pharmacy_id=P1)

    with pytest.raises(AuthorizationGapError) as exc:
        resolve(context, ScopingLevel.BRANCH_LEVEL, strict=True)

    assert exc.value.error == ErrorCatalog.SCOPE_CONTEXT_INCOMPLETE
    assert exc.value.missing_fields == ["branch_id"]


def test_strict_mode_admin_requires_pharmacy():
    with pytest.raises(AuthorizationGapError) as exc:
        resolve(tenant_context("admin"), ScopingLevel.PHARMACY_WIDE, strict=True)

    assert exc.value.missing_fields == ["pharmacy_id"]


def test_strict_mode_ignores_superadmin_without_assignments():
    assert resolve(tenant_context("super_admin"), ScopingLevel.BRANCH_LEVEL, strict=True) is UNRESTRICTED


def test_scope_filter_matches_and_narrow():
    scope = ScopeFilter(pharmacy_id=P1)
    other_branch = str(uuid.uuid4())

    assert scope.matches(P1, B1)
    assert scope.matches(P1, other_branch)
    assert not scope.matches(str(uuid.uuid4()), B1)

    narrowed = scope.narrow(pharmacy_id=str(uuid.uuid4()), branch_id=B1)
    assert narrowed == ScopeFilter(pharmacy_id=P1, branch_id=B1)
    assert UNRESTRICTED.is_unrestricted
    assert not narrowed.is_unrestricted


def test_can_access_pharmacy():
    other = str(uuid.uuid4())

    assert can_access_pharmacy(tenant_context("super_admin"), other)
    assert can_access_pharmacy(tenant_context("admin", pharmacy_id=P1), P1)
    assert not can_access_pharmacy(tenant_context("admin", pharmacy_id=P1), other)
    assert not can_access_pharmacy(tenant_context("cashier"), P1)
    unknown = type(tenant_context("admin"))(role="auditor", user_id="u", pharmacy_id=P1)
    assert not can_access_pharmacy(unknown, P1)


def test_can_access_branch():
    other_branch = str(uuid.uuid4())
    other_pharmacy = str(uuid.uuid4())

    assert can_access_branch(tenant_context("super_admin"), other_branch)
    assert can_access_branch(tenant_context("admin", pharmacy_id=P1), other_branch, P1)
    assert not can_access_branch(tenant_context("admin", pharmacy_id=P1), other_branch, other_pharmacy)
    assert not can_access_branch(tenant_context("admin", pharmacy_id=P1), other_branch)
    cashier = tenant_context("cashier", pharmacy_id=P1, branch_id=B1)
    assert can_access_branch(cashier, B1, P1)
    assert can_access_branch(cashier, B1)
    assert not can_access_branch(cashier, other_branch, P1)
    assert not can_access_branch(cashier, B1, other_pharmacy)
