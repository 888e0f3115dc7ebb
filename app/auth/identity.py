# app/auth/identity.py
import jwt
import requests
from ..config import settings
from ..errors import AwardError, ErrorCode
from ..utils.logging import logger

def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()

def _verify_jwt(token: str) -> str:
    try:
        claims = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            options={"verify_aud": settings.JWT_AUDIENCE is not None},
        )
    except jwt.ExpiredSignatureError:
        raise AwardError(ErrorCode.UNAUTHORIZED, "Token has expired")
    except jwt.InvalidTokenError as e:
        logger.info("Rejected bearer token: %s", e)
        raise AwardError(ErrorCode.UNAUTHORIZED, "Invalid or missing authentication")
    user_id = claims.get("sub")
    if not user_id:
        raise AwardError(ErrorCode.UNAUTHORIZED, "Invalid or missing authentication")
    return str(user_id)

def _verify_remote(token: str) -> str:
    """Ask the identity provider who owns the token (GET {AUTH_URL}/user)."""
    url = settings.AUTH_URL.rstrip("/") + "/user"
    headers = {"Authorization": f"Bearer {token}", "Accept": "application/json"}
    if settings.AUTH_API_KEY:
        headers["apikey"] = settings.AUTH_API_KEY
    try:
        r = requests.get(url, headers=headers, timeout=10)
    except requests.RequestException as e:
        logger.error("Identity provider unreachable: %s", e)
        raise AwardError(ErrorCode.UNAUTHORIZED, "Invalid or missing authentication")
    if r.status_code != 200:
        logger.info("Identity provider rejected token: HTTP %s", r.status_code)
        raise AwardError(ErrorCode.UNAUTHORIZED, "Invalid or missing authentication")
    try:
        body = r.json()
    except ValueError:
        body = None
    user_id = body.get("id") if isinstance(body, dict) else None
    if not user_id:
        raise AwardError(ErrorCode.UNAUTHORIZED, "Invalid or missing authentication")
    return str(user_id)

def verify_bearer_token(token: str) -> str:
    if settings.JWT_SECRET:
        return _verify_jwt(token)
    if settings.AUTH_URL:
        return _verify_remote(token)
    raise AwardError(ErrorCode.CONFIGURATION_ERROR, "No identity provider configured")

def resolve_user_id(explicit_user_id: str | None, authorization: str | None) -> str:
    """Trusted callers pass userId; everyone else is identified by their bearer token."""
    if explicit_user_id:
        return explicit_user_id
    token = _bearer_token(authorization)
    if token is None:
        raise AwardError(ErrorCode.UNAUTHORIZED, "userId is required")
    return verify_bearer_token(token)
