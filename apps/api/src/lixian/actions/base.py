"""
Base interfaces for the /action endpoint.

The server only knows about ActionHandler: something with an init hook,
a request function, and a close hook. ActionModule is the unit the bundled
JSON handler dispatches to.
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

from starlette.requests import Request
from starlette.responses import Response

ActionFunc = Callable[[Any], Awaitable[Any]]


class ActionError(Exception):
    """An action failed; the message is sent back to the client in `err`."""


class ActionHandler(ABC):
    """
    Collaborator bound to /action.

    init() is called once before the server accepts connections and
    close() once on shutdown.
    """

    async def init(self) -> None:
        """Prepare resources. Override in subclasses if needed."""
        pass

    @abstractmethod
    async def handle(self, request: Request) -> Response:
        """Produce the HTTP response for one /action request."""
        ...

    async def close(self) -> None:
        """Release resources. Override in subclasses if needed."""
        pass


class ActionModule(ABC):
    """
    A named group of actions.

    Each action takes the request's `data` and returns the value placed in
    the response's `data`. Failures are raised as ActionError.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Module name used in the envelope (e.g. 'aria2')."""
        ...

    @abstractmethod
    def actions(self) -> dict[str, ActionFunc]:
        """Map of action name to coroutine function."""
        ...

    async def init(self) -> None:
        """Load state. Override in subclasses if needed."""
        pass

    async def close(self) -> None:
        """Close connections. Override in subclasses if needed."""
        pass
