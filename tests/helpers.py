"""Row builders shared by the test modules."""

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from myradio.features.permissions.models import ActionPermission, PermissionType
from myradio.features.permissions.queries import get_action_id, get_module_id
from myradio.features.users.models import AuthOfficer, Member, MemberOfficer, Officer


SERVICE_ID = 1
LONG_AGO = datetime(2000, 1, 1)


async def noop_handler(ctx):
    return {"module": ctx.module, "action": ctx.action}


async def add_type(db: AsyncSession, type_id: int, symbol: str) -> int:
    db.add(PermissionType(typeid=type_id, phpconstant=symbol, descr=symbol.replace("_", " ").title()))
    await db.flush()
    return type_id


async def add_rule(
    db: AsyncSession,
    module: Optional[str],
    action: Optional[str],
    type_id: Optional[int],
    service_id: int = SERVICE_ID,
) -> ActionPermission:
    """Insert a rule row directly, degenerate combinations included."""
    module_id = await get_module_id(db, module, service_id) if module else None
    action_id = await get_action_id(db, module_id, action) if action else None
    rule = ActionPermission(serviceid=service_id, moduleid=module_id, actionid=action_id, typeid=type_id)
    db.add(rule)
    await db.flush()
    return rule


async def add_member(
    db: AsyncSession,
    member_id: int,
    fname: str = "Test",
    sname: str = "Member",
    type_ids: Iterable[int] = (),
    from_date: datetime = LONG_AGO,
    till_date: Optional[datetime] = None,
    officer: Optional[bool] = None,
    **fields,
) -> Member:
    """
    A member, holding one officership that carries the given permission types.

    The officership is left out when there are no types, unless officer=True.
    """
    type_ids = list(type_ids)
    member = Member(memberid=member_id, fname=fname, sname=sname, **fields)
    db.add(member)
    await db.flush()
    if officer is None:
        officer = bool(type_ids)
    if not officer:
        return member

    position = Officer(officer_name=f"Officer for {member_id}")
    db.add(position)
    await db.flush()

    db.add(MemberOfficer(memberid=member_id, officerid=position.officerid, from_date=from_date, till_date=till_date))
    for type_id in type_ids:
        db.add(AuthOfficer(officerid=position.officerid, lookupid=type_id))
    await db.flush()
    return member
