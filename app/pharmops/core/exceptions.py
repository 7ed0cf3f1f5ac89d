"""Domain errors raised by the scoping and expired-sale reconciliation code.

Two of them are ``AppError`` subclasses so the HTTP layer renders them with the
regular error envelope; the other two never leave the service layer.
"""

from __future__ import annotations

from app.pharmops.core.error_catalog import AppError, ErrorCatalog


class ConfigurationError(Exception):
    """Short-code expiry is disabled or not configured for a pharmacy.

    Not a failure: callers treat it as "nothing is eligible" for that tenant.
    """

    def __init__(self, pharmacy_id: str | None, reason: str):
        self.pharmacy_id = pharmacy_id
        self.reason = reason
        super().__init__(f"short code expiry unavailable for pharmacy {pharmacy_id}: {reason}")


class AuthorizationGapError(AppError):
    def __init__(self, role: str, missing_fields: list[str]):
        self.role = role
        self.missing_fields = missing_fields
        super().__init__(
            ErrorCatalog.SCOPE_CONTEXT_INCOMPLETE,
            details={"role": role, "missing_fields": missing_fields},
        )


class StoreConnectivityError(AppError):
    """The database could not be reached or a statement timed out. Fatal for a sweep."""

    def __init__(self, operation: str, cause: Exception | None = None):
        self.operation = operation
        self.cause = cause
        details = {"operation": operation}
        if cause is not None:
            details["type"] = cause.__class__.__name__
        super().__init__(ErrorCatalog.DB_UNAVAILABLE, details=details)


class PerItemRestorationError(Exception):
    def __init__(self, sale_id: str, inventory_item_id: str, quantity: int, reason: str):
        self.sale_id = sale_id
        self.inventory_item_id = inventory_item_id
        self.quantity = quantity
        self.reason = reason
        super().__init__(
            f"could not restore {quantity} units of {inventory_item_id} for sale {sale_id}: {reason}"
        )
