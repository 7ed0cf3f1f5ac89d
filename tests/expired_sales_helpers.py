from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from app.pharmops.core.context import TenantContext
from app.pharmops.core.security import create_operator_access_token
from app.pharmops.db.models import (
    Branch,
    InventoryItem,
    PendingSale,
    PendingSaleLine,
    Pharmacy,
    PharmacySettings,
)


def create_pharmacy(db_session, *, suffix: str, short_code: bool = True, expiry_minutes: int | None = 15):
    pharmacy = Pharmacy(id=uuid.uuid4(), name=f"Pharmacy {suffix}")
    branch = Branch(id=uuid.uuid4(), pharmacy_id=pharmacy.id, name=f"Branch {suffix}")
    other_branch = Branch(id=uuid.uuid4(), pharmacy_id=pharmacy.id, name=f"Branch {suffix} B")
    settings = PharmacySettings(
        id=uuid.uuid4(),
        pharmacy_id=pharmacy.id,
        require_sale_short_code=short_code,
        short_code_expiry_minutes=expiry_minutes,
    )
    db_session.add_all([pharmacy, branch, other_branch, settings])
    db_session.commit()
    return pharmacy, branch, other_branch


def create_inventory_item(db_session, *, pharmacy_id, branch_id, name: str = "Paracetamol 500mg", quantity: int = 100):
    item = InventoryItem(
        id=uuid.uuid4(),
        pharmacy_id=pharmacy_id,
        branch_id=branch_id,
        name=name,
        quantity=quantity,
    )
    db_session.add(item)
    db_session.commit()
    return item


def create_pending_sale(
    db_session,
    *,
    pharmacy_id,
    branch_id,
    created_at: datetime,
    lines: list[tuple[object, int]],
    total_amount: str | Decimal = "50.00",
    short_code: str | None = "ABC123",
    finalized: bool = False,
):
    sale = PendingSale(
        id=uuid.uuid4(),
        pharmacy_id=pharmacy_id,
        branch_id=branch_id,
        short_code=short_code,
        finalized=finalized,
        total_amount=Decimal(total_amount),
        created_at=created_at,
    )
    db_session.add(sale)
    for line_no, (inventory_item_id, quantity) in enumerate(lines, start=1):
        db_session.add(
            PendingSaleLine(
                id=uuid.uuid4(),
                sale_id=sale.id,
                line_no=line_no,
                inventory_item_id=inventory_item_id,
                quantity=quantity,
            )
        )
    db_session.commit()
    db_session.refresh(sale)
    # detached so ids stay readable after a sweep deletes the row
    db_session.expunge(sale)
    return sale


def tenant_context(role: str, *, pharmacy_id=None, branch_id=None, user_id=None) -> TenantContext:
    return TenantContext(
        role=role,
        user_id=str(user_id or uuid.uuid4()),
        pharmacy_id=str(pharmacy_id) if pharmacy_id else None,
        branch_id=str(branch_id) if branch_id else None,
    )


def bearer(role: str, *, pharmacy_id=None, branch_id=None, user_id=None) -> dict[str, str]:
    token = create_operator_access_token(
        user_id=str(user_id or uuid.uuid4()),
        role=role,
        pharmacy_id=pharmacy_id,
        branch_id=branch_id,
    )
    return {"Authorization": f"Bearer {token}"}
