"""
FastAPI dependencies resolving the principal behind a request.

Authentication happens elsewhere: whatever signs a member in stores their id in
the session as "memberid". An impersonation override ("impersonate_memberid")
takes precedence when present.
"""
from typing import Annotated, Optional
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from myradio.core.cache import create_cache_store
from myradio.core.database.engine import get_db
from myradio.features.users.principal import Principal, PrincipalStore
from myradio.utils import get_logger


log = get_logger(__name__)

SESSION_MEMBER_KEY = "memberid"
SESSION_IMPERSONATE_KEY = "impersonate_memberid"

_principal_store: Optional[PrincipalStore] = None


def get_principal_store() -> PrincipalStore:
    """Process-wide PrincipalStore on the configured cache store."""
    global _principal_store
    if _principal_store is None:
        _principal_store = PrincipalStore(create_cache_store())
    return _principal_store


def get_session_member_id(request: Request) -> Optional[int]:
    """The effective member id of the session, honouring impersonation."""
    member_id = request.session.get(SESSION_IMPERSONATE_KEY) or request.session.get(SESSION_MEMBER_KEY)
    return int(member_id) if member_id is not None else None


async def get_current_principal(
    request: Request,
    member_id: Annotated[Optional[int], Depends(get_session_member_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
    store: Annotated[PrincipalStore, Depends(get_principal_store)],
) -> Principal:
    """
    Get the principal for this request.

    Requests without a session member get the anonymous placeholder, which
    holds no permissions but can still open global-access actions.
    """
    if member_id is None:
        principal = Principal.anonymous()
    else:
        principal = await store.get(db, member_id)

    request.state.principal = principal
    return principal


async def start_impersonation(request: Request, store: PrincipalStore, member_id: int) -> None:
    """
    Switch the session to act as another member.

    The target's cached principal is dropped so the override starts from a
    freshly derived permission set.
    """
    log.warning(
        "Member %s is impersonating member %d",
        request.session.get(SESSION_MEMBER_KEY),
        member_id,
    )
    request.session[SESSION_IMPERSONATE_KEY] = member_id
    await store.invalidate(member_id)


def get_rate_limit_key(request: Request) -> str:
    """
    Key requests by session member for rate limiting.
    Used with slowapi Limiter.
    """
    session = request.scope.get("session") or {}
    member_id = session.get(SESSION_MEMBER_KEY)
    if member_id is not None:
        return f"member:{member_id}"
    return request.client.host if request.client else "anonymous"
