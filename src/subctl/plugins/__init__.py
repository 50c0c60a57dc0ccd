"""Extension layer — lifecycle hooks via pluggy.

Discovery: ``subctl.plugins`` entry points plus ``.subctl/plugins/*.py``.
INVARIANT: Plugin failures are warnings, never errors.
"""

from subctl.plugins.event_bus import EventBus
from subctl.plugins.hookspecs import hookimpl
from subctl.plugins.manager import PluginManager

__all__ = ["EventBus", "PluginManager", "hookimpl"]
