"""
Per-request context handed to controllers.
"""
from dataclasses import dataclass, field
from typing import Any, Optional, TYPE_CHECKING

from fastapi import HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from myradio.features.permissions.vocabulary import PermissionVocabulary
from myradio.features.users.principal import Principal

if TYPE_CHECKING:
    from myradio.features.dispatch.dispatcher import RequestDispatcher


@dataclass
class RequestContext:
    """Everything a controller needs; built by the dispatcher after authorization."""
    db: AsyncSession
    principal: Principal
    vocabulary: PermissionVocabulary
    dispatcher: "RequestDispatcher"
    module: str
    action: str
    params: dict[str, Any] = field(default_factory=dict)
    request: Optional[Request] = None

    def has_permission(self, symbol: str) -> bool:
        """Whether the principal holds the named permission (e.g. "AUTH_LOCK")."""
        return self.principal.holds(self.vocabulary.type_id(symbol))

    async def can_open(self, module: str, action: str) -> bool:
        """Advisory check for showing or hiding links to another action."""
        return await self.dispatcher.authorize(self.db, module, action, self.principal, enforce=False)


async def request_params(request: Request) -> dict[str, Any]:
    """
    Query parameters, overlaid with a JSON object body if one was sent.

    Raises:
        HTTPException: 400 if the body claims to be JSON but does not parse.
    """
    params: dict[str, Any] = dict(request.query_params)
    if request.headers.get("content-type", "").startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Request body is not valid JSON")
        if isinstance(body, dict):
            params.update(body)
    return params
