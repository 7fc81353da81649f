from fastapi import Depends, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import settings
from app.errors import ApiError

bearer_scheme = HTTPBearer(auto_error=False)

LOCAL_HOSTS = {"127.0.0.1", "::1", "::ffff:127.0.0.1"}


def _get_credentials(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> HTTPAuthorizationCredentials | None:
    return credentials


def is_local_request(request: Request) -> bool:
    return request.client is not None and request.client.host in LOCAL_HOSTS


def require_analytics_access(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_get_credentials),
    token: str | None = Query(None),
) -> None:
    """Bearer token or ``?token=``; without a configured token only localhost may read."""
    if not settings.analytics_token:
        if is_local_request(request):
            return
        raise ApiError(401, "未授权")
    supplied = credentials.credentials.strip() if credentials else (token or "").strip()
    if not supplied or supplied != settings.analytics_token:
        raise ApiError(401, "未授权")
