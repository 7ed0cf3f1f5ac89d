from jose import JWTError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from app.pharmops.core.context import build_tenant_context
from app.pharmops.core.security import decode_token


class TenantContextMiddleware(BaseHTTPMiddleware):
    """Best-effort extraction of the caller's tenant context for logging.

    Authorization never relies on this; routes resolve the context again via
    ``require_tenant_context`` and reject bad tokens there.
    """

    async def dispatch(self, request: Request, call_next):
        payload = {}
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.lower().startswith("bearer "):
            try:
                payload = decode_token(auth_header.split(" ", 1)[1])
            except JWTError:
                payload = {}

        request.state.context = build_tenant_context(
            role=payload.get("role"),
            user_id=payload.get("sub"),
            pharmacy_id=payload.get("pharmacy_id"),
            branch_id=payload.get("branch_id"),
            trace_id=getattr(request.state, "trace_id", ""),
        )

        return await call_next(request)
