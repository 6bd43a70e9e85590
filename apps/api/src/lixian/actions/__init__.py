"""Action endpoint - handler interface, dispatcher, and JSON envelope handler."""

from lixian.actions.base import ActionError, ActionHandler, ActionModule
from lixian.actions.handler import JSONActionHandler
from lixian.actions.registry import ActionDispatcher

__all__ = [
    "ActionDispatcher",
    "ActionError",
    "ActionHandler",
    "ActionModule",
    "JSONActionHandler",
]
