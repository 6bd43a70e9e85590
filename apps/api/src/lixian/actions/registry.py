"""
Action Dispatcher - routes envelopes to action modules.

Failures never escape as exceptions: every dispatch produces a response,
with the problem described in `err`.
"""

import logging

from lixian.actions.base import ActionError, ActionModule
from lixian.core.models import ActionRequest, ActionResponse

logger = logging.getLogger(__name__)


class ActionDispatcher:
    """Central registry of action modules."""

    def __init__(self) -> None:
        self._modules: dict[str, ActionModule] = {}

    def register(self, module: ActionModule) -> None:
        """
        Register a module.

        Args:
            module: The module to register; replaces one with the same name
        """
        self._modules[module.name] = module

    def unregister(self, name: str) -> bool:
        """
        Unregister a module by name.

        Returns:
            True if removed, False if not found
        """
        return self._modules.pop(name, None) is not None

    def get(self, name: str) -> ActionModule | None:
        """Get a module by name."""
        return self._modules.get(name)

    def list_modules(self) -> list[str]:
        """Get list of registered module names."""
        return list(self._modules.keys())

    async def dispatch(self, request: ActionRequest) -> ActionResponse:
        """
        Run the requested action.

        Args:
            request: Parsed envelope

        Returns:
            ActionResponse echoing module/action, with data or err set
        """
        response = ActionResponse.for_request(request)

        module = self._modules.get(request.module)
        if not module:
            response.err = f"unknown module: {request.module}"
            return response

        func = module.actions().get(request.action)
        if not func:
            response.err = f"unknown action: {request.module}.{request.action}"
            return response

        try:
            response.data = await func(request.data)
        except ActionError as e:
            response.err = str(e)
        except Exception as e:
            logger.exception(f"Action {request.module}.{request.action} failed")
            response.err = str(e) or e.__class__.__name__

        return response

    async def init_all(self) -> None:
        """Initialize all modules in registration order."""
        for module in self._modules.values():
            await module.init()

    async def close_all(self) -> None:
        """Close all modules."""
        for module in self._modules.values():
            await module.close()
