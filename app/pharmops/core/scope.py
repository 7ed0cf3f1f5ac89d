"""Role-based data scoping.

``resolve`` turns a tenant context and a requested granularity into a
conjunctive equality filter over ``pharmacy_id``/``branch_id``. It is pure and
does no I/O; every tenant-tagged query in the service layer goes through it.

Resolution table (requested level -> filter):

============  ============  ====================  ====================
role          Unrestricted  PharmacyWide          BranchLevel
============  ============  ====================  ====================
SUPER_ADMIN   {}            {}                    {}
ADMIN         {pharmacy}    {pharmacy}            {pharmacy}
PHARMACIST    {pharmacy}    {pharmacy}            {pharmacy, branch}
CASHIER       {pharmacy}    {pharmacy}            {pharmacy, branch}
unknown       no match      no match              no match
============  ============  ====================  ====================

SUPER_ADMIN sees everything regardless of the level asked for. ADMIN manages a
whole pharmacy, so a BranchLevel request collapses to pharmacy-wide for that
role even though it is narrower than what the caller literally asked for.
Only SUPER_ADMIN can obtain an unrestricted filter.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import assert_never

from app.pharmops.core.context import TenantContext
from app.pharmops.core.exceptions import AuthorizationGapError


NO_MATCH_ID = "00000000-0000-0000-0000-000000000000"


class Role(str, enum.Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    PHARMACIST = "pharmacist"
    CASHIER = "cashier"


class ScopingLevel(str, enum.Enum):
    UNRESTRICTED = "unrestricted"
    PHARMACY_WIDE = "pharmacy_wide"
    BRANCH_LEVEL = "branch_level"


@dataclass(frozen=True)
class ScopeFilter:
    pharmacy_id: str | None = None
    branch_id: str | None = None

    @property
    def is_unrestricted(self) -> bool:
        return self.pharmacy_id is None and self.branch_id is None

    @property
    def matches_nothing(self) -> bool:
        return self.pharmacy_id == NO_MATCH_ID

    def as_dict(self) -> dict[str, str]:
        payload = {}
        if self.pharmacy_id is not None:
            payload["pharmacy_id"] = self.pharmacy_id
        if self.branch_id is not None:
            payload["branch_id"] = self.branch_id
        return payload

    def apply(self, query, model):
        """Add the equality constraints to a ``select``/``update``/``delete`` over ``model``."""
        if self.pharmacy_id is not None:
            query = query.where(model.pharmacy_id == self.pharmacy_id)
        if self.branch_id is not None:
            query = query.where(model.branch_id == self.branch_id)
        return query

    def matches(self, pharmacy_id: str | None, branch_id: str | None) -> bool:
        if self.pharmacy_id is not None and str(pharmacy_id) != self.pharmacy_id:
            return False
        if self.branch_id is not None and str(branch_id) != self.branch_id:
            return False
        return True

    def narrow(self, *, pharmacy_id: str | None = None, branch_id: str | None = None) -> "ScopeFilter":
        return ScopeFilter(
            pharmacy_id=self.pharmacy_id or pharmacy_id,
            branch_id=self.branch_id or branch_id,
        )


UNRESTRICTED = ScopeFilter()
MATCH_NOTHING = ScopeFilter(pharmacy_id=NO_MATCH_ID)


def parse_role(role: str | Role | None) -> Role | None:
    if isinstance(role, Role):
        return role
    normalized = (role or "").strip().lower()
    try:
        return Role(normalized)
    except ValueError:
        return None


def _check_fields(context: TenantContext, role: Role, required: tuple[str, ...], strict: bool) -> None:
    if not strict:
        return
    missing = [field for field in required if not getattr(context, field)]
    if missing:
        raise AuthorizationGapError(role.value, missing)


def resolve(context: TenantContext, level: ScopingLevel, *, strict: bool = False) -> ScopeFilter:
    role = parse_role(context.role)
    if role is None:
        return MATCH_NOTHING

    match role:
        case Role.SUPER_ADMIN:
            return UNRESTRICTED
        case Role.ADMIN:
            _check_fields(context, role, ("pharmacy_id",), strict)
            return ScopeFilter(pharmacy_id=context.pharmacy_id)
        case Role.PHARMACIST | Role.CASHIER:
            if level is ScopingLevel.BRANCH_LEVEL:
                _check_fields(context, role, ("pharmacy_id", "branch_id"), strict)
                return ScopeFilter(pharmacy_id=context.pharmacy_id, branch_id=context.branch_id)
            _check_fields(context, role, ("pharmacy_id",), strict)
            return ScopeFilter(pharmacy_id=context.pharmacy_id)
        case _:
            assert_never(role)


def can_access_pharmacy(context: TenantContext, pharmacy_id: str) -> bool:
    role = parse_role(context.role)
    if role is None:
        return False
    match role:
        case Role.SUPER_ADMIN:
            return True
        case Role.ADMIN | Role.PHARMACIST | Role.CASHIER:
            return context.pharmacy_id is not None and context.pharmacy_id == str(pharmacy_id)
        case _:
            assert_never(role)


def can_access_branch(context: TenantContext, branch_id: str, pharmacy_id: str | None = None) -> bool:
    role = parse_role(context.role)
    if role is None:
        return False
    match role:
        case Role.SUPER_ADMIN:
            return True
        case Role.ADMIN:
            # the owning pharmacy is needed to tell whether the branch is ours
            if pharmacy_id is None:
                return False
            return context.pharmacy_id is not None and context.pharmacy_id == str(pharmacy_id)
        case Role.PHARMACIST | Role.CASHIER:
            if context.branch_id is None or context.branch_id != str(branch_id):
                return False
            return pharmacy_id is None or context.pharmacy_id == str(pharmacy_id)
        case _:
            assert_never(role)
