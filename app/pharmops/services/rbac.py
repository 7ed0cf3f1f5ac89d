from app.pharmops.core.scope import Role, parse_role

SALES_VIEW = "sales.view"
SALES_MANAGE = "sales.manage"

ROLE_PERMISSIONS: dict[Role, frozenset[str]] = {
    Role.SUPER_ADMIN: frozenset({SALES_VIEW, SALES_MANAGE}),
    Role.ADMIN: frozenset({SALES_VIEW, SALES_MANAGE}),
    Role.PHARMACIST: frozenset({SALES_VIEW}),
    Role.CASHIER: frozenset({SALES_VIEW}),
}


def has_permission(role: str | Role | None, permission_key: str) -> bool:
    parsed = parse_role(role)
    if parsed is None:
        return False
    return permission_key in ROLE_PERMISSIONS[parsed]
