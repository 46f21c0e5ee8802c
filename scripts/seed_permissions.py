"""
Seed script to populate the service, permission types and built-in rules.

Run this script after database initialization to create:
- The service row for SERVICE_ID
- The standard permission vocabulary (l_action)
- Permission rules for the built-in controllers

Running it twice is harmless: existing rows are left alone.

Run it before starting the server against a fresh database. The server loads
the permission vocabulary once at startup and keeps it until it restarts.

Usage:
    uv run python -m scripts.seed_permissions
"""
import asyncio
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from myradio.core import config
from myradio.core.database.engine import get_db, init_db
from myradio.features.permissions.models import ActionPermission, PermissionType, Service
from myradio.features.permissions.queries import add_action_permission, get_action_id, get_module_id
from myradio.utils import get_logger


log = get_logger("myradio.seed")


DEFAULT_PERMISSION_TYPES = [
    ("AUTH_SHOWERRORS", "View server error details"),
    ("AUTH_VIEWOTHERMEMBERS", "View contact details of other members"),
    ("AUTH_EDITANYPROFILE", "Edit any member's profile"),
    ("AUTH_IMPERSONATE", "Impersonate other members"),
    ("AUTH_BLOCKIMPERSONATE", "Cannot be impersonated"),
    ("AUTH_IMPERSONATE_BLOCKED_USERS", "Impersonate members who cannot be impersonated"),
    ("AUTH_LOCK", "Lock member accounts"),
    ("AUTH_EDITPERMISSIONS", "Edit action permissions"),
]


# (module, action, permission) - action None for every action of the module,
# permission None for global access
DEFAULT_RULES = [
    ("MyRadio", "default", None),
    ("Profile", "view", None),
    ("Profile", "impersonate", "AUTH_IMPERSONATE"),
    ("Core", None, "AUTH_EDITPERMISSIONS"),
]


async def seed_service(db: AsyncSession) -> int:
    """Create the service row for SERVICE_ID if missing."""
    service = await db.get(Service, config.SERVICE_ID)
    if service:
        log.debug(f"Service {config.SERVICE_ID} already exists, skipping")
        return service.serviceid

    db.add(Service(serviceid=config.SERVICE_ID, name="MyRadio", enabled=True))
    await db.flush()
    log.info(f"Created service {config.SERVICE_ID}")
    return config.SERVICE_ID


async def seed_permission_types(db: AsyncSession) -> dict[str, int]:
    """
    Create the standard permission types.

    Returns:
        Dictionary mapping symbolic names to type ids
    """
    log.info("Creating permission types...")
    types_map = {}

    for symbol, description in DEFAULT_PERMISSION_TYPES:
        stmt = select(PermissionType).where(PermissionType.phpconstant == symbol)
        existing = (await db.execute(stmt)).scalars().first()

        if existing:
            log.debug(f"Permission type '{symbol}' already exists, skipping")
            types_map[symbol] = existing.typeid
            continue

        permission_type = PermissionType(phpconstant=symbol, descr=description)
        db.add(permission_type)
        await db.flush()
        types_map[symbol] = permission_type.typeid
        log.info(f"Created permission type: {symbol}")

    return types_map


async def _rule_exists(
    db: AsyncSession, service_id: int, module_id: int, action_id: Optional[int], type_id: Optional[int]
) -> bool:
    p = ActionPermission
    stmt = select(p.actpermissionid).where(
        p.serviceid == service_id,
        p.moduleid == module_id,
        p.actionid.is_(None) if action_id is None else p.actionid == action_id,
        p.typeid.is_(None) if type_id is None else p.typeid == type_id,
    )
    return (await db.execute(stmt)).first() is not None


async def seed_rules(db: AsyncSession, service_id: int, types_map: dict[str, int]):
    """Create permission rules for the built-in controllers."""
    log.info("Creating permission rules...")

    for module, action, permission in DEFAULT_RULES:
        module_id = await get_module_id(db, module, service_id)
        action_id = await get_action_id(db, module_id, action) if action else None
        type_id = types_map[permission] if permission else None

        if await _rule_exists(db, service_id, module_id, action_id, type_id):
            log.debug(f"Rule {module}/{action or '*'} already exists, skipping")
            continue

        await add_action_permission(db, module_id, action_id, type_id, service_id)
        log.info(f"Created rule {module}/{action or '*'} -> {permission or 'GLOBAL ACCESS'}")


async def main():
    """Main function to seed the permission tables."""
    log.info("Starting permission seeding...")

    log.info("Initializing database tables...")
    await init_db()

    # get_db commits when the generator finishes
    async for db in get_db():
        service_id = await seed_service(db)
        types_map = await seed_permission_types(db)
        await seed_rules(db, service_id, types_map)
        log.info("Permission seeding completed successfully!")


if __name__ == "__main__":
    asyncio.run(main())
