"""
Controller registry and the built-in controllers.

Importing this package registers the built-in controllers on default_registry.
"""
from myradio.features.controllers import core, menu, profile  # noqa: F401
