"""
The MyRadio menu: the default controller of the default module.
"""
from myradio.core.exceptions import ControllerNotFound, MisconfiguredAction
from myradio.features.controllers.registry import default_registry
from myradio.features.dispatch.context import RequestContext
from myradio.utils import get_logger


log = get_logger(__name__)


@default_registry.controller("MyRadio", "default")
async def menu(ctx: RequestContext):
    """List every controller the principal may open."""
    items = []
    for controller in ctx.dispatcher.registry:
        try:
            allowed = await ctx.can_open(controller.module, controller.action)
        except ControllerNotFound:
            # pinned to versions that are not all released
            continue
        except MisconfiguredAction as e:
            log.error("Hiding %s/%s from the menu: %s", controller.module, controller.action, e.message)
            continue
        if allowed:
            items.append({
                "module": controller.module,
                "action": controller.action,
                "url": f"/{controller.module}/{controller.action}",
            })

    return {
        "title": "Menu",
        "member": ctx.principal.name or None,
        "items": items,
    }
