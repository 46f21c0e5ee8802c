"""
Store access for the permission tables outside of rule resolution.

Covers lazy Module/Action creation, rule assignment and the listings used by the
Core administration controllers.
"""
from typing import List, Optional

from sqlalchemy import and_, func, not_, or_, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from myradio.core import config
from myradio.features.permissions.models import (
    Action,
    ActionPermission,
    Module,
    PermissionType,
    Service,
    ServiceVersion,
)
from myradio.features.permissions.schemas import (
    ActionPermissionEntry,
    PermissionTypeEntry,
    ServiceEntry,
    ServiceVersionEntry,
)
from myradio.utils import get_logger


log = get_logger(__name__)


def _insert_ignoring_conflicts(db: AsyncSession, model, index_elements: list[str], **values):
    """Build INSERT ... ON CONFLICT DO NOTHING for the session's dialect."""
    dialect = db.get_bind().dialect.name
    insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
    return insert(model).values(**values).on_conflict_do_nothing(index_elements=index_elements)


async def get_module_id(db: AsyncSession, module: str, service_id: Optional[int] = None) -> int:
    """
    Return the id of a Module, creating it if necessary.

    Concurrent creators race on the (serviceid, name) unique constraint; the
    loser's insert is a no-op and both read back the same row.
    """
    service_id = config.SERVICE_ID if service_id is None else service_id
    stmt = select(Module.moduleid).where(Module.serviceid == service_id, Module.name == module)

    module_id = (await db.execute(stmt)).scalar_one_or_none()
    if module_id is None:
        await db.execute(
            _insert_ignoring_conflicts(db, Module, ["serviceid", "name"], serviceid=service_id, name=module)
        )
        module_id = (await db.execute(stmt)).scalar_one()
        log.info("Created module %s (%d)", module, module_id)
    return module_id


async def get_action_id(db: AsyncSession, module_id: int, action: str) -> int:
    """
    Return the id of an Action within a module, creating it if necessary.
    """
    stmt = select(Action.actionid).where(Action.moduleid == module_id, Action.name == action)

    action_id = (await db.execute(stmt)).scalar_one_or_none()
    if action_id is None:
        await db.execute(
            _insert_ignoring_conflicts(db, Action, ["moduleid", "name"], moduleid=module_id, name=action)
        )
        action_id = (await db.execute(stmt)).scalar_one()
        log.info("Created action %s in module %d (%d)", action, module_id, action_id)
    return action_id


async def add_action_permission(
    db: AsyncSession,
    module_id: Optional[int],
    action_id: Optional[int],
    type_id: Optional[int],
    service_id: Optional[int] = None,
) -> ActionPermission:
    """
    Assign a permission rule.

    Raises:
        ValueError: for the degenerate combinations the resolver ignores.
    """
    if type_id is None and (module_id is None or action_id is None):
        raise ValueError("A rule without a permission type must name both a module and an action")

    rule = ActionPermission(
        serviceid=config.SERVICE_ID if service_id is None else service_id,
        moduleid=module_id,
        actionid=action_id,
        typeid=type_id,
    )
    db.add(rule)
    await db.flush()
    log.info("Assigned permission rule %r", rule)
    return rule


async def list_action_permissions(db: AsyncSession) -> List[ActionPermissionEntry]:
    """
    Every meaningful rule with service, module, action and permission names.

    Wildcard actions are shown as "ALL ACTIONS", wildcard modules as
    "ALL MODULES" and rules without a permission type as "GLOBAL ACCESS".
    """
    p = ActionPermission
    stmt = (
        select(
            p.actpermissionid,
            Service.name.label("service"),
            func.coalesce(Module.name, "ALL MODULES").label("module"),
            func.coalesce(Action.name, "ALL ACTIONS").label("action"),
            func.coalesce(PermissionType.descr, "GLOBAL ACCESS").label("permission"),
        )
        .join(Service, p.serviceid == Service.serviceid)
        .outerjoin(Module, p.moduleid == Module.moduleid)
        .outerjoin(Action, p.actionid == Action.actionid)
        .outerjoin(PermissionType, p.typeid == PermissionType.typeid)
        .where(
            not_(and_(p.moduleid.is_(None), p.typeid.is_(None))),
            not_(and_(p.actionid.is_(None), p.typeid.is_(None))),
            # module-less rules only make sense service-wide
            or_(p.moduleid.is_not(None), p.actionid.is_(None)),
        )
        .order_by(Service.name, Module.name, Action.name)
    )
    result = await db.execute(stmt)
    return [ActionPermissionEntry.model_validate(row, from_attributes=True) for row in result]


async def list_permission_types(db: AsyncSession) -> List[PermissionTypeEntry]:
    """All permission types, ordered by description."""
    result = await db.execute(
        select(PermissionType.typeid.label("value"), PermissionType.descr.label("text"))
        .order_by(PermissionType.descr)
    )
    return [PermissionTypeEntry.model_validate(row, from_attributes=True) for row in result]


async def list_services(db: AsyncSession) -> List[ServiceEntry]:
    """All managed services, ordered by name."""
    result = await db.execute(
        select(Service.serviceid.label("value"), Service.name.label("text"), Service.enabled)
        .order_by(Service.name)
    )
    return [ServiceEntry.model_validate(row, from_attributes=True) for row in result]


async def list_service_versions(db: AsyncSession, service_id: Optional[int] = None) -> List[ServiceVersionEntry]:
    """Released versions of a service."""
    service_id = config.SERVICE_ID if service_id is None else service_id
    result = await db.execute(
        select(ServiceVersion.version, ServiceVersion.path, ServiceVersion.is_default)
        .where(ServiceVersion.serviceid == service_id)
        .order_by(ServiceVersion.version)
    )
    return [ServiceVersionEntry.model_validate(row, from_attributes=True) for row in result]


async def get_default_service_version(
    db: AsyncSession, service_id: Optional[int] = None
) -> Optional[ServiceVersionEntry]:
    service_id = config.SERVICE_ID if service_id is None else service_id
    result = await db.execute(
        select(ServiceVersion.version, ServiceVersion.path, ServiceVersion.is_default)
        .where(ServiceVersion.serviceid == service_id, ServiceVersion.is_default.is_(True))
        .limit(1)
    )
    row = result.first()
    return ServiceVersionEntry.model_validate(row, from_attributes=True) if row else None
