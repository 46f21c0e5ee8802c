"""
Catch-all routes feeding every page request through the dispatcher.

    GET /?module=Profile&action=view   separate module/action parameters
    GET /Profile/view                  combined path
    GET /view                          single segment, resolved by the dispatcher
"""
from typing import Optional
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from myradio.core.database.engine import get_db
from myradio.features.controllers.registry import default_registry
from myradio.features.dispatch.dispatcher import RequestDispatcher
from myradio.features.users.dependencies import get_current_principal
from myradio.features.users.principal import Principal


router = APIRouter()

_dispatcher: Optional[RequestDispatcher] = None


def get_dispatcher() -> RequestDispatcher:
    """Process-wide dispatcher over the default controller registry."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = RequestDispatcher(default_registry)
    return _dispatcher


@router.api_route("/", methods=["GET", "POST"])
async def dispatch_parameters(
    request: Request,
    module: Optional[str] = None,
    action: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    dispatcher: RequestDispatcher = Depends(get_dispatcher),
):
    """Dispatch using the module and action parameters."""
    request.state.dispatcher = dispatcher
    module, action = await dispatcher.split_request(db, None, module, action)
    return await dispatcher.authorize_and_dispatch(db, module, action, principal, request)


@router.api_route("/{request_path:path}", methods=["GET", "POST"])
async def dispatch_path(
    request: Request,
    request_path: str,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    dispatcher: RequestDispatcher = Depends(get_dispatcher),
):
    """Dispatch a rewritten Module/action URL."""
    request.state.dispatcher = dispatcher
    module, action = await dispatcher.split_request(db, request_path)
    return await dispatcher.authorize_and_dispatch(db, module, action, principal, request)
