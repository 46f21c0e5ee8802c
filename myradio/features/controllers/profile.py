"""
Profile controllers.

Any member may view the basic profile and officerships of any other member,
and the phone and email of anyone currently holding an officership. Members
with AUTH_VIEWOTHERMEMBERS also see contact and account details of everyone.
The returned "actions" flags tell the page which links to offer.
"""
from fastapi import HTTPException, status

from myradio.features.controllers.registry import default_registry
from myradio.features.dispatch.context import RequestContext
from myradio.features.users.dependencies import start_impersonation
from myradio.features.users.principal import Principal
from myradio.features.users.queries import list_officerships
from myradio.utils import utcnow


def _member_id_param(ctx: RequestContext) -> int | None:
    raw = ctx.params.get("memberid")
    if raw in (None, ""):
        return ctx.principal.member_id
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="memberid must be an integer")


async def _load_member(ctx: RequestContext, member_id: int) -> Principal:
    if member_id == ctx.principal.member_id:
        return ctx.principal
    return await ctx.dispatcher.principals.get(ctx.db, member_id)


def _may_impersonate(ctx: RequestContext, target: Principal) -> bool:
    if not ctx.has_permission("AUTH_IMPERSONATE"):
        return False
    blocked = target.holds(ctx.vocabulary.type_id("AUTH_BLOCKIMPERSONATE"))
    return not blocked or ctx.has_permission("AUTH_IMPERSONATE_BLOCKED_USERS")


@default_registry.controller("Profile", "view")
async def view_profile(ctx: RequestContext):
    member_id = _member_id_param(ctx)
    if member_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="memberid is required")

    user = await _load_member(ctx, member_id)
    is_self = user.member_id == ctx.principal.member_id
    officerships = await list_officerships(ctx.db, user.member_id)

    user_data = {
        "memberid": user.member_id,
        "fname": user.fname,
        "sname": user.sname,
        "college": user.college,
        "officerships": [entry.model_dump(mode="json") for entry in officerships],
    }
    now = utcnow()
    if any(entry.is_current(now) for entry in officerships):
        user_data.update(email=user.email, phone=user.phone)
    if ctx.has_permission("AUTH_VIEWOTHERMEMBERS"):
        user_data.update(
            email=user.email,
            phone=user.phone,
            local_name=user.local_name,
            account_locked=user.account_locked,
            receive_email=user.receive_email,
        )

    return {
        "title": "View Profile",
        "user": user_data,
        "actions": {
            "edit": is_self or ctx.has_permission("AUTH_EDITANYPROFILE"),
            "impersonate": not is_self and _may_impersonate(ctx, user),
            "lock": ctx.has_permission("AUTH_LOCK"),
        },
    }


@default_registry.controller("Profile", "impersonate")
async def impersonate(ctx: RequestContext):
    member_id = _member_id_param(ctx)
    if member_id is None or member_id == ctx.principal.member_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="memberid of another member is required")
    if ctx.request is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Impersonation needs a session")

    target = await _load_member(ctx, member_id)
    if not _may_impersonate(ctx, target):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="This member cannot be impersonated")

    await start_impersonation(ctx.request, ctx.dispatcher.principals, member_id)
    return {"impersonating": member_id, "name": target.name}
