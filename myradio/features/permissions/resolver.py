"""
Permission rule resolution for a Module/Action pair.

The applicable rules are the union of:
1. exact rules            - module and action match, permission type present
2. module-wide wildcards  - module matches, action NULL, permission type present
3. global-access rules    - module and action match, permission type NULL
4. service-wide rules     - module NULL, action NULL, permission type present

Rows with a NULL module or a NULL action *and* a NULL permission type are never
selected. Holding any one resulting permission is sufficient; there is no
most-specific-wins precedence between exact and wildcard rules.
"""
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select, union
from sqlalchemy.ext.asyncio import AsyncSession

from myradio.core import config
from myradio.core.exceptions import MisconfiguredAction
from myradio.features.permissions.models import Action, ActionPermission, Module
from myradio.utils import get_logger


log = get_logger(__name__)


@dataclass(frozen=True)
class RuleResult:
    """
    One applicable rule: a required permission type, or none (global access).
    """
    type_id: Optional[int]

    @property
    def is_global_access(self) -> bool:
        return self.type_id is None


GLOBAL_ACCESS = RuleResult(None)


class PermissionRuleResolver:
    """Looks up the rules that gate a Module/Action pair."""

    def __init__(self, service_id: int | None = None):
        self.service_id = config.SERVICE_ID if service_id is None else service_id

    def _statement(self, module: str, action: str):
        p = ActionPermission

        exact = (
            select(p.typeid)
            .join(Module, p.moduleid == Module.moduleid)
            .join(Action, p.actionid == Action.actionid)
            .where(
                p.serviceid == self.service_id,
                Module.name == module,
                Action.name == action,
                p.typeid.is_not(None),
            )
        )
        module_wide = (
            select(p.typeid)
            .join(Module, p.moduleid == Module.moduleid)
            .where(
                p.serviceid == self.service_id,
                Module.name == module,
                p.actionid.is_(None),
                p.typeid.is_not(None),
            )
        )
        global_access = (
            select(p.typeid)
            .join(Module, p.moduleid == Module.moduleid)
            .join(Action, p.actionid == Action.actionid)
            .where(
                p.serviceid == self.service_id,
                Module.name == module,
                Action.name == action,
                p.typeid.is_(None),
            )
        )
        service_wide = select(p.typeid).where(
            p.serviceid == self.service_id,
            p.moduleid.is_(None),
            p.actionid.is_(None),
            p.typeid.is_not(None),
        )
        return union(exact, module_wide, global_access, service_wide)

    async def rules_for(self, db: AsyncSession, module: str, action: str) -> frozenset[RuleResult]:
        """
        Return the rules applying to module/action.

        Raises:
            MisconfiguredAction: if no rule at all applies. An action without
                rules is a developer/operator mistake, not an access decision.
        """
        result = await db.execute(self._statement(module, action))
        rules = frozenset(RuleResult(type_id) for type_id in result.scalars().all())

        if not rules:
            raise MisconfiguredAction(
                f"There are no permissions defined for the {module}/{action} action!",
                module=module,
                action=action,
            )

        log.debug("Rules for %s/%s: %s", module, action, sorted(rules, key=lambda r: r.type_id or 0))
        return rules
