"""JSON envelope handler bound to /action."""

import json
import logging

from pydantic import ValidationError
from starlette.requests import ClientDisconnect, Request
from starlette.responses import JSONResponse, PlainTextResponse, Response

from lixian.actions.base import ActionHandler
from lixian.actions.registry import ActionDispatcher
from lixian.core.models import ActionRequest

logger = logging.getLogger(__name__)


class JSONActionHandler(ActionHandler):
    """
    Decodes {"module", "action", "data"} envelopes and dispatches them.

    - 400 "bad request body" if the body cannot be read
    - 400 "bad request content" if it is not a valid envelope
    - 200 with the ActionResponse otherwise, even when the action failed
    """

    def __init__(self, dispatcher: ActionDispatcher):
        self.dispatcher = dispatcher

    async def init(self) -> None:
        await self.dispatcher.init_all()
        logger.info(f"Action modules ready: {', '.join(self.dispatcher.list_modules())}")

    async def handle(self, request: Request) -> Response:
        try:
            content = await request.body()
        except ClientDisconnect:
            return PlainTextResponse("bad request body", status_code=400)

        try:
            envelope = ActionRequest.model_validate(json.loads(content))
        except (ValueError, ValidationError):
            return PlainTextResponse("bad request content", status_code=400)

        response = await self.dispatcher.dispatch(envelope)
        if not response.ok:
            logger.warning(f"{envelope.module}.{envelope.action}: {response.err}")

        return JSONResponse(response.model_dump(mode="json", by_alias=True))

    async def close(self) -> None:
        await self.dispatcher.close_all()
