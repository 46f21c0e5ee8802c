"""
Request dispatcher: the gate every request passes before a controller runs.

Steps, in this order and short-circuiting on the first failure:
1. Resolve     - registry lookup (TraversalAttempt / ControllerNotFound -> 404)
2. Vocabulary  - one-time load of permission types
3. Rules       - applicable permission rules (none -> MisconfiguredAction)
4. Decide      - any global-access rule, or any rule type the principal holds
5. Enforce     - AccessDenied (403), or False for advisory checks
"""
from typing import Any, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from myradio.core import config
from myradio.core.exceptions import AccessDenied, ControllerNotFound
from myradio.features.controllers.registry import Controller, ControllerRegistry
from myradio.features.dispatch.context import RequestContext, request_params
from myradio.features.permissions.queries import list_service_versions
from myradio.features.permissions.resolver import PermissionRuleResolver
from myradio.features.permissions.vocabulary import VocabularyLoader
from myradio.features.users.dependencies import get_principal_store
from myradio.features.users.principal import Principal, PrincipalStore
from myradio.utils import get_logger


log = get_logger(__name__)


class RequestDispatcher:
    """
    Resolves, authorizes and runs controllers.

    Usage:
        dispatcher = RequestDispatcher(default_registry)
        module, action = await dispatcher.split_request(db, "Profile/view")
        result = await dispatcher.authorize_and_dispatch(db, module, action, principal)
    """

    def __init__(
        self,
        registry: ControllerRegistry,
        resolver: Optional[PermissionRuleResolver] = None,
        vocabulary_loader: Optional[VocabularyLoader] = None,
        service_id: Optional[int] = None,
        default_module: Optional[str] = None,
        default_action: Optional[str] = None,
        principal_store: Optional[PrincipalStore] = None,
    ):
        self.registry = registry
        self.service_id = config.SERVICE_ID if service_id is None else service_id
        self.resolver = resolver or PermissionRuleResolver(self.service_id)
        self.vocabulary_loader = vocabulary_loader or VocabularyLoader()
        self.default_module = default_module or config.DEFAULT_MODULE
        self.default_action = default_action or config.DEFAULT_ACTION
        self.principals = principal_store or get_principal_store()

    async def released_versions(self, db: AsyncSession) -> list[str]:
        return [entry.version for entry in await list_service_versions(db, self.service_id)]

    async def resolve_controller(self, db: AsyncSession, module: str, action: str) -> Controller:
        # Safety check first: unsafe names never reach the store
        self.registry.ensure_safe(module, action)
        versions = await self.released_versions(db)
        return self.registry.lookup(module, action, versions)

    async def split_request(
        self,
        db: AsyncSession,
        request_path: Optional[str] = None,
        module: Optional[str] = None,
        action: Optional[str] = None,
    ) -> tuple[str, str]:
        """
        Work out Module/Action from a request.

        A combined path "Module/action" wins. A single segment "foo" is tried as
        default-module/foo, then foo/default-action. Without a path the module
        and action parameters are used, each falling back to its default.

        Raises:
            ControllerNotFound: if a single segment fits neither reading.
        """
        if request_path:
            info = request_path.split("/")
            if len(info) > 1 and info[1]:
                return info[0], info[1]

            versions = await self.released_versions(db)
            if self.registry.is_valid(self.default_module, info[0], versions):
                return self.default_module, info[0]
            if self.registry.is_valid(info[0], self.default_action, versions):
                return info[0], self.default_action
            raise ControllerNotFound(request=request_path)

        return module or self.default_module, action or self.default_action

    async def _authorize(
        self,
        db: AsyncSession,
        module: str,
        action: str,
        principal: Principal,
        enforce: bool,
    ) -> bool:
        await self.vocabulary_loader.ensure_loaded(db)
        rules = await self.resolver.rules_for(db, module, action)

        # It only needs to match one
        authorized = any(
            rule.is_global_access or principal.holds(rule.type_id) for rule in rules
        )
        if authorized:
            return True

        log.info("Member %s denied %s/%s", principal.member_id, module, action)
        if enforce:
            raise AccessDenied(module=module, action=action, member_id=principal.member_id)
        return False

    async def authorize(
        self,
        db: AsyncSession,
        module: str,
        action: str,
        principal: Principal,
        *,
        enforce: bool = True,
    ) -> bool:
        """
        Check whether principal may open module/action.

        With enforce=True a refusal raises AccessDenied; with enforce=False it
        returns False so callers can hide links and buttons.

        Raises:
            TraversalAttempt, ControllerNotFound: the action cannot be routed.
            MisconfiguredAction: the action has no permission rules at all.
            AccessDenied: refused while enforcing.
        """
        await self.resolve_controller(db, module, action)
        return await self._authorize(db, module, action, principal, enforce)

    async def authorize_and_dispatch(
        self,
        db: AsyncSession,
        module: str,
        action: str,
        principal: Principal,
        request: Optional[Request] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        """
        Authorize with enforcement and run the controller.

        The controller only runs after every gate step has passed. Without
        explicit params they are read from the request, and only then, so a
        malformed body never pre-empts a 403 or 404.
        """
        controller = await self.resolve_controller(db, module, action)
        await self._authorize(db, module, action, principal, enforce=True)
        if params is None and request is not None:
            params = await request_params(request)

        context = RequestContext(
            db=db,
            principal=principal,
            vocabulary=await self.vocabulary_loader.ensure_loaded(db),
            dispatcher=self,
            module=module,
            action=action,
            params=dict(params or {}),
            request=request,
        )
        log.debug("Dispatching %s/%s for member %s", module, action, principal.member_id)
        return await controller.handler(context)
