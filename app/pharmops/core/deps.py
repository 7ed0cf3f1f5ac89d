from fastapi import Depends, Request
from jose import JWTError
from pydantic import ValidationError

from app.pharmops.core.context import TenantContext, build_tenant_context
from app.pharmops.core.error_catalog import AppError, ErrorCatalog
from app.pharmops.core.metrics import metrics
from app.pharmops.core.security import TokenData, decode_token, oauth2_scheme
from app.pharmops.services.rbac import has_permission


def get_optional_token_data(token: str | None = Depends(oauth2_scheme)) -> TokenData | None:
    if not token:
        return None
    try:
        payload = decode_token(token)
        return TokenData(**payload)
    except (JWTError, ValidationError, TypeError) as exc:
        raise AppError(ErrorCatalog.INVALID_TOKEN) from exc


def get_current_token_data(token_data: TokenData | None = Depends(get_optional_token_data)) -> TokenData:
    if token_data is None:
        raise AppError(ErrorCatalog.INVALID_TOKEN)
    return token_data


def require_tenant_context(
    request: Request,
    token_data: TokenData = Depends(get_current_token_data),
) -> TenantContext:
    context = build_tenant_context(
        role=token_data.role,
        user_id=token_data.sub,
        pharmacy_id=str(token_data.pharmacy_id) if token_data.pharmacy_id else None,
        branch_id=str(token_data.branch_id) if token_data.branch_id else None,
        trace_id=getattr(request.state, "trace_id", ""),
    )
    if context is None:
        raise AppError(ErrorCatalog.TENANT_CONTEXT_REQUIRED)
    request.state.context = context
    return context


def require_permission(permission_key: str):
    def dependency(context: TenantContext = Depends(require_tenant_context)) -> TenantContext:
        if not has_permission(context.role, permission_key):
            metrics.increment_rbac_denied()
            raise AppError(ErrorCatalog.PERMISSION_DENIED)
        return context

    return dependency


__all__ = [
    "get_optional_token_data",
    "get_current_token_data",
    "require_tenant_context",
    "require_permission",
]
