"""
Controller registry: the static binding from Module/Action to a handler.

Names are checked for path separators before any lookup. A binding is only
routable if it exists in every released version of the service, so a route
present in one version lineage but missing from another is never served.
"""
from collections.abc import Awaitable, Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import Any, Optional, TYPE_CHECKING

from myradio.core.exceptions import ControllerNotFound, TraversalAttempt
from myradio.utils import get_logger

if TYPE_CHECKING:
    from myradio.features.dispatch.context import RequestContext


log = get_logger(__name__)

PATH_SEPARATORS = ("/", "\\")

Handler = Callable[["RequestContext"], Awaitable[Any]]


def action_safe(name: str) -> None:
    """
    Raise TraversalAttempt if a module or action name could leave its directory.
    """
    if any(separator in name for separator in PATH_SEPARATORS):
        log.warning("Directory traversal thwarted for %r", name)
        raise TraversalAttempt(name=name)


@dataclass(frozen=True)
class Controller:
    """A handler bound to Module/Action, optionally pinned to some versions."""
    module: str
    action: str
    handler: Handler
    versions: Optional[frozenset[str]] = None

    def available_in(self, version: str) -> bool:
        return self.versions is None or version in self.versions


class ControllerRegistry:
    """
    Maps (module, action) to controllers.

    Usage:
        registry = ControllerRegistry()

        @registry.controller("Profile", "view")
        async def view_profile(ctx: RequestContext):
            ...
    """

    def __init__(self):
        self._controllers: dict[tuple[str, str], Controller] = {}

    def register(
        self,
        module: str,
        action: str,
        handler: Handler,
        versions: Optional[Iterable[str]] = None,
    ) -> Controller:
        for name in (module, action):
            if not name or any(separator in name for separator in PATH_SEPARATORS):
                raise ValueError(f"Invalid controller name: {name!r}")
        if (module, action) in self._controllers:
            raise ValueError(f"Controller {module}/{action} is already registered")

        controller = Controller(
            module=module,
            action=action,
            handler=handler,
            versions=frozenset(versions) if versions is not None else None,
        )
        self._controllers[(module, action)] = controller
        return controller

    def controller(self, module: str, action: str, versions: Optional[Iterable[str]] = None):
        """Decorator form of register()."""
        def decorator(handler: Handler) -> Handler:
            self.register(module, action, handler, versions)
            return handler
        return decorator

    def ensure_safe(self, module: str, action: str) -> None:
        action_safe(module)
        action_safe(action)

    def lookup(self, module: str, action: str, versions: Iterable[str] = ()) -> Controller:
        """
        Find the binding for names already known to be safe.

        Raises:
            ControllerNotFound: if unbound, or missing from any given version.
        """
        controller = self._controllers.get((module, action))
        if controller is None:
            raise ControllerNotFound(module=module, action=action)

        missing = [version for version in versions if not controller.available_in(version)]
        if missing:
            log.info("%s/%s is not available in versions %s", module, action, missing)
            raise ControllerNotFound(module=module, action=action, versions=missing)
        return controller

    def resolve(self, module: str, action: str, versions: Iterable[str] = ()) -> Controller:
        """
        Raises:
            TraversalAttempt: if either name contains a path separator.
            ControllerNotFound: if there is no valid binding.
        """
        self.ensure_safe(module, action)
        return self.lookup(module, action, versions)

    def is_valid(self, module: str, action: str, versions: Iterable[str] = ()) -> bool:
        """Whether module/action would resolve; unsafe names are simply invalid."""
        try:
            self.resolve(module, action, versions)
        except (TraversalAttempt, ControllerNotFound):
            return False
        return True

    def __iter__(self) -> Iterator[Controller]:
        return iter(sorted(self._controllers.values(), key=lambda c: (c.module, c.action)))

    def __len__(self) -> int:
        return len(self._controllers)

    def __contains__(self, key: object) -> bool:
        return key in self._controllers


default_registry = ControllerRegistry()
