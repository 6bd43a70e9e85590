"""cookies module - stores cookies files pasted into the front-end."""

import logging
from pathlib import Path
from typing import Any

from lixian.actions.base import ActionError, ActionFunc, ActionModule

logger = logging.getLogger(__name__)


class CookiesModule(ActionModule):
    """
    Writes cookies files into the config directory.

    save: {filename, content, page?} -> page, so the client can reload it.
    """

    def __init__(self, config_dir: str | Path = Path("config")):
        self.config_dir = Path(config_dir)

    @property
    def name(self) -> str:
        return "cookies"

    def actions(self) -> dict[str, ActionFunc]:
        return {"save": self.save}

    async def save(self, data: Any) -> str:
        if not isinstance(data, dict):
            raise ActionError("bad cookies data")

        filename = data.get("filename")
        if not isinstance(filename, str) or not self._is_plain_name(filename):
            raise ActionError("bad cookies filename")

        content = data.get("content")
        if not isinstance(content, str):
            raise ActionError("bad cookies content")

        target = self.config_dir / filename
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        except OSError as e:
            raise ActionError(str(e))

        logger.info(f"Saved cookies to {target}")

        page = data.get("page")
        return page if isinstance(page, str) else ""

    @staticmethod
    def _is_plain_name(filename: str) -> bool:
        """Only bare file names; nothing that could leave config_dir."""
        if filename in {"", ".", ".."}:
            return False
        return "/" not in filename and "\\" not in filename and "\x00" not in filename
