"""
Core administration controllers for the permission rule table.
"""
from fastapi import HTTPException, status
from pydantic import ValidationError

from myradio.features.controllers.registry import default_registry
from myradio.features.dispatch.context import RequestContext
from myradio.features.permissions.queries import (
    add_action_permission,
    get_action_id,
    get_module_id,
    list_action_permissions,
    list_permission_types,
    list_services,
)
from myradio.features.permissions.schemas import ActionPermissionCreate
from myradio.utils import get_logger


log = get_logger(__name__)


@default_registry.controller("Core", "listPermissions")
async def list_permissions(ctx: RequestContext):
    """Every Service/Module/Action permission rule."""
    return {"title": "Action Permissions", "rules": await list_action_permissions(ctx.db)}


@default_registry.controller("Core", "listPermissionTypes")
async def list_types(ctx: RequestContext):
    return {"title": "Permissions", "permissions": await list_permission_types(ctx.db)}


@default_registry.controller("Core", "listServices")
async def services(ctx: RequestContext):
    return {"title": "Services", "services": await list_services(ctx.db)}


@default_registry.controller("Core", "addActionPermission")
async def add_permission(ctx: RequestContext):
    """Assign a permission rule, creating the module and action rows if needed."""
    try:
        data = ActionPermissionCreate.model_validate(ctx.params)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.errors(include_url=False, include_context=False),
        )

    if data.type_id is not None and data.type_id not in ctx.vocabulary:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Permission type {data.type_id} does not exist",
        )

    module_id = await get_module_id(ctx.db, data.module, ctx.dispatcher.service_id)
    action_id = await get_action_id(ctx.db, module_id, data.action) if data.action else None
    rule = await add_action_permission(ctx.db, module_id, action_id, data.type_id, ctx.dispatcher.service_id)

    log.info(
        "Member %s added rule %s/%s -> %s",
        ctx.principal.member_id, data.module, data.action or "*", data.type_id,
    )
    return {"actpermissionid": rule.actpermissionid}
