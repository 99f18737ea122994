"""Page route gating on the session cookie."""
from typing import Iterable, Optional
from urllib.parse import urlencode
from fastapi import Request
from fastapi.responses import RedirectResponse

SESSION_COOKIE = "session"
PROTECTED_PATHS = ["/", "/interview"]
AUTH_PATHS = ["/sign-in", "/sign-up"]
UNGATED_PREFIXES = ("/api", "/webhooks", "/health", "/assets", "/docs", "/openapi.json", "/favicon.ico")


def under_prefix(path: str, prefixes: Iterable[str]) -> bool:
    """Whether ``path`` is one of ``prefixes`` or a sub-path of one."""
    return any(path == prefix or path.startswith(prefix + "/") for prefix in prefixes)


def is_ungated_path(path: str) -> bool:
    return under_prefix(path, UNGATED_PREFIXES)


def is_protected_path(path: str) -> bool:
    if path == "/":
        return True
    return under_prefix(path, [prefix for prefix in PROTECTED_PATHS if prefix != "/"])


def is_auth_path(path: str) -> bool:
    return path in AUTH_PATHS


def resolve_redirect(path: str, has_session: bool) -> Optional[str]:
    """
    Decide where a page request should be redirected, if anywhere.

    Only cookie presence is checked; token validity is left to the handlers.
    """
    if is_ungated_path(path):
        return None
    if is_protected_path(path) and not has_session:
        return f"/sign-in?{urlencode({'next': path})}"
    if is_auth_path(path) and has_session:
        return "/"
    return None


async def session_gate(request: Request, call_next):
    """HTTP middleware redirecting page requests based on the session cookie."""
    has_session = bool(request.cookies.get(SESSION_COOKIE))
    target = resolve_redirect(request.url.path, has_session)
    if target is not None:
        return RedirectResponse(target, status_code=307)
    return await call_next(request)
