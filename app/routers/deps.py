from fastapi import Depends, Header, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.errors import AuthenticationError, AuthorizationError
from app.core.security import decode_access_token
from app.db.session import get_db
from app.models.api_key import ApiKey
from app.models.user import User
from app.services.api_keys import authenticate_key
from app.services.audit import RequestMeta
from app.services.image_host import ImageHostClient

bearer_scheme = HTTPBearer(auto_error=False)


def _session_token(request: Request, credentials: HTTPAuthorizationCredentials | None) -> str | None:
    if credentials is not None and credentials.scheme.lower() == "bearer":
        return credentials.credentials
    cookie = request.cookies.get(get_settings().token_cookie_name)
    if cookie:
        return cookie
    return request.query_params.get("token")


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    token = _session_token(request, credentials)
    if not token:
        raise AuthenticationError()
    payload = decode_access_token(token)
    user = db.get(User, payload["sub"])
    if user is None:
        raise AuthenticationError("User not found")
    if not user.is_verified:
        raise AuthenticationError("Please verify your email before accessing this route")
    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise AuthorizationError(f"User role {current_user.role} is not authorized to access this route")
    return current_user


def get_api_key(
    x_api_key: str | None = Header(default=None),
    api_key_param: str | None = Query(default=None, alias="apiKey"),
    db: Session = Depends(get_db),
) -> ApiKey:
    return authenticate_key(db, x_api_key or api_key_param)


def get_image_host(request: Request) -> ImageHostClient:
    return request.app.state.image_host


def request_meta(request: Request) -> RequestMeta:
    forwarded = request.headers.get("x-forwarded-for")
    ip_address = forwarded.split(",")[0].strip() if forwarded else None
    if ip_address is None and request.client is not None:
        ip_address = request.client.host
    return RequestMeta(ip_address=ip_address, user_agent=request.headers.get("user-agent"))
