from dataclasses import dataclass


@dataclass(frozen=True)
class TenantContext:
    role: str
    user_id: str
    pharmacy_id: str | None = None
    branch_id: str | None = None
    trace_id: str = ""


def build_tenant_context(
    *,
    role: str | None,
    user_id: str | None,
    pharmacy_id: str | None,
    branch_id: str | None,
    trace_id: str = "",
) -> TenantContext | None:
    if not role or not user_id:
        return None
    return TenantContext(
        role=role,
        user_id=user_id,
        pharmacy_id=pharmacy_id or None,
        branch_id=branch_id or None,
        trace_id=trace_id,
    )
