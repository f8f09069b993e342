"""Authentication of chat transports calling the message endpoint.

Each chat platform adapter (WhatsApp bridge, Telegram bot, ...) is a
*transport*. The transport id identifies the adapter, not the chatting user;
user identity always comes from the message body and the session provider.

Environment Variables:
    PAYCHAT_AUTH_MODE: ``dev`` (default) or ``jwt``
    JWT_SECRET_KEY: Shared secret for bearer tokens (required in jwt mode)
    JWT_ALGORITHM: Token algorithm (default: HS256)
    JWT_AUDIENCE: Expected ``aud`` claim, checked only when set
    PAYCHAT_ALLOWED_TRANSPORTS: Comma-separated transport ids; empty allows any
"""

import logging
import os
from typing import Annotated, Any

import jwt
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

logger = logging.getLogger(__name__)

AUTH_MODES = ("dev", "jwt")
FIXTURE_TRANSPORT_ID = "dev-transport"
# Claims checked in order for the transport id
TRANSPORT_CLAIMS = ("transport_id", "sub")

security = HTTPBearer(auto_error=False)


def get_auth_mode() -> str:
    return os.getenv("PAYCHAT_AUTH_MODE", "dev").lower()


def _unauthorized(detail: str, challenge: bool = False) -> HTTPException:
    headers = {"WWW-Authenticate": "Bearer"} if challenge else None
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail, headers=headers)


def _misconfigured(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


def allowed_transports() -> frozenset[str]:
    raw = os.getenv("PAYCHAT_ALLOWED_TRANSPORTS", "")
    return frozenset(t.strip() for t in raw.split(",") if t.strip())


def _decode(token: str) -> dict[str, Any]:
    secret_key = os.getenv("JWT_SECRET_KEY")
    if not secret_key:
        logger.error("JWT_SECRET_KEY is not set but PAYCHAT_AUTH_MODE=jwt")
        raise _misconfigured("Authentication not properly configured")

    audience = os.getenv("JWT_AUDIENCE") or None
    try:
        return jwt.decode(
            token,
            secret_key,
            algorithms=[os.getenv("JWT_ALGORITHM", "HS256")],
            audience=audience,
            options={"verify_aud": audience is not None},
        )
    except jwt.ExpiredSignatureError:
        logger.warning("Rejected expired transport token")
        raise _unauthorized("Token expired") from None
    except jwt.InvalidTokenError as e:
        logger.warning("Rejected transport token: %s", e)
        raise _unauthorized("Invalid authentication token") from None


def validate_jwt_token(token: str) -> str:
    """Decode a transport bearer token and return its transport id.

    Raises:
        HTTPException: 401 for bad, expired or unlisted tokens, 500 when the
            server has no signing secret
    """
    claims = _decode(token)
    transport_id = next((claims[c] for c in TRANSPORT_CLAIMS if claims.get(c)), None)
    if transport_id is None:
        logger.warning("Transport token carries none of %s", ", ".join(TRANSPORT_CLAIMS))
        raise _unauthorized("Invalid token: missing transport identifier")

    transport_id = str(transport_id)
    allowed = allowed_transports()
    if allowed and transport_id not in allowed:
        logger.warning("Transport %s is not in PAYCHAT_ALLOWED_TRANSPORTS", transport_id)
        raise _unauthorized("Transport not allowed")
    return transport_id


async def get_transport_id(
    x_transport_id: Annotated[str | None, Header(alias="X-Transport-Id")] = None,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)] = None,
) -> str:
    """FastAPI dependency naming the transport that sent the request.

    In dev mode the ``X-Transport-Id`` header is trusted as-is. In jwt mode
    the header is ignored and only the bearer token counts.
    """
    auth_mode = get_auth_mode()
    if auth_mode not in AUTH_MODES:
        logger.error("Unsupported PAYCHAT_AUTH_MODE %r, expected one of %s", auth_mode, AUTH_MODES)
        raise _misconfigured("Invalid authentication configuration")

    if auth_mode == "dev":
        return x_transport_id or FIXTURE_TRANSPORT_ID

    if credentials is None or not credentials.credentials:
        logger.warning("Message request without bearer token in jwt mode")
        raise _unauthorized("Authentication required", challenge=True)
    return validate_jwt_token(credentials.credentials)


CurrentTransport = Annotated[str, Depends(get_transport_id)]
