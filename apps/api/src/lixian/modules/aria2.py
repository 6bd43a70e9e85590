"""aria2 module - download control through aria2's JSON-RPC interface."""

import json
import logging
from pathlib import Path
from typing import Any
from uuid import uuid4

import httpx
from pydantic import ValidationError

from lixian.actions.base import ActionError, ActionFunc, ActionModule
from lixian.core.models import Aria2Config, Aria2Stat, Aria2Task
from lixian.core.units import readable_size

logger = logging.getLogger(__name__)

DEFAULT_URL = "http://localhost:6800/jsonrpc"

# Fields requested for every task in getStat
TASK_KEYS = [
    "gid",
    "status",  # active waiting paused error complete removed
    "totalLength",  # bytes
    "completedLength",  # bytes
    "downloadSpeed",  # bytes/sec
    "connections",
    "files",
]

# tellWaiting / tellStopped window
TASK_WINDOW = 1000


class Aria2Error(ActionError):
    """aria2 was unreachable or answered with an error."""


class Aria2Client:
    """
    Minimal JSON-RPC 2.0 client for aria2.

    Every call is a POST of {"jsonrpc", "id", "method", "params"} to the
    configured URL.
    """

    def __init__(
        self,
        url: str = DEFAULT_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def call(self, method: str, params: list[Any] | None = None) -> Any:
        """
        Invoke one RPC method.

        Returns:
            The `result` member of the reply

        Raises:
            Aria2Error on transport failure or an RPC error object
        """
        payload = {
            "jsonrpc": "2.0",
            "id": uuid4().hex,
            "method": method,
            "params": params or [],
        }

        try:
            response = await self._client.post(self.url, json=payload)
        except httpx.ConnectError:
            raise Aria2Error(f"Cannot connect to aria2 at {self.url}")
        except httpx.HTTPError as e:
            raise Aria2Error(f"aria2 request failed: {e}")

        try:
            body = response.json()
        except ValueError:
            raise Aria2Error(f"aria2 error: {response.status_code}")

        if not isinstance(body, dict):
            raise Aria2Error("bad response data")

        error = body.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise Aria2Error(f"{method}: {message or 'unknown error'}")

        if "result" not in body:
            raise Aria2Error("bad response data")
        return body["result"]

    async def multicall(self, calls: list[tuple[str, list[Any]]]) -> list[Any]:
        """
        Run several methods in one system.multicall round trip.

        Returns:
            One result per call, unwrapped from aria2's single-item lists
        """
        methods = [{"methodName": name, "params": params} for name, params in calls]
        results = await self.call("system.multicall", [methods])
        if not isinstance(results, list) or len(results) != len(calls):
            raise Aria2Error("bad response data")

        unwrapped: list[Any] = []
        for (name, _), item in zip(calls, results):
            if isinstance(item, dict) and "faultString" in item:
                raise Aria2Error(f"{name}: {item['faultString']}")
            if not isinstance(item, list) or not item:
                raise Aria2Error(f"bad response data for {name}")
            unwrapped.append(item[0])
        return unwrapped

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()


def parse_task(item: dict[str, Any]) -> Aria2Task:
    """Build a task row from a tellActive/tellWaiting/tellStopped entry."""
    size = _to_int(item.get("totalLength"))
    completed = _to_int(item.get("completedLength"))

    progress = 0.0
    if size > 0:
        progress = round(completed * 100.0 / size, 2)

    # First file only, without its directory
    files = item.get("files") or [{}]
    path = files[0].get("path", "") if isinstance(files[0], dict) else ""
    filename = path.rsplit("/", 1)[-1]

    return Aria2Task(
        gid=str(item.get("gid", "")),
        filename=filename,
        status=str(item.get("status", "")),
        size=size,
        completed_length=completed,
        progress=progress,
        speed=_to_int(item.get("downloadSpeed")),
        connections=str(item.get("connections", "")),
    )


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


class Aria2Module(ActionModule):
    """
    Actions for the aria2 page.

    The RPC URL comes from <config_dir>/aria2.json when present, otherwise
    from the default passed in. saveConfig rewrites that file.
    """

    def __init__(
        self,
        default_url: str = DEFAULT_URL,
        config_path: str | Path = Path("config/aria2.json"),
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.default_url = default_url
        self.config_path = Path(config_path)
        self.timeout = timeout
        self._transport = transport
        self._rpc: Aria2Client | None = None
        self._version = ""

    @property
    def name(self) -> str:
        return "aria2"

    @property
    def url(self) -> str:
        return self.rpc.url

    @property
    def rpc(self) -> Aria2Client:
        if not self._rpc:
            raise Aria2Error("aria2 module not initialized")
        return self._rpc

    def actions(self) -> dict[str, ActionFunc]:
        return {
            "getConfig": self.get_config,
            "saveConfig": self.save_config,
            "getVersion": self.get_version,
            "getStat": self.get_stat,
            "start": self.start,
            "pause": self.pause,
            "remove": self.remove,
            "startAll": self.start_all,
            "pauseAll": self.pause_all,
            "removeStoped": self.remove_stoped,
            "removeAllStoped": self.remove_all_stoped,
        }

    async def init(self) -> None:
        url = self._load_url()
        logger.info(f"aria2 url: {url}")
        self._rpc = Aria2Client(url, timeout=self.timeout, transport=self._transport)
        self._version = ""

    async def close(self) -> None:
        if self._rpc:
            await self._rpc.close()
            self._rpc = None

    # =========================================================================
    # Configuration
    # =========================================================================

    async def get_config(self, data: Any = None) -> dict[str, Any]:
        return Aria2Config(url=self.url).model_dump()

    async def save_config(self, data: Any) -> dict[str, Any]:
        url = data.get("url") if isinstance(data, dict) else None
        if not isinstance(url, str) or not url.strip():
            raise ActionError("saveConfig invalid url")

        config = Aria2Config(url=url.strip())
        rpc = self.rpc
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            self.config_path.write_text(config.model_dump_json(), encoding="utf-8")
        except OSError as e:
            raise ActionError(str(e))

        rpc.url = config.url
        self._version = ""
        logger.info(f"aria2 url changed to {config.url}")
        return config.model_dump()

    def _load_url(self) -> str:
        """URL from the config file, or the default if it is missing or bad."""
        try:
            raw = self.config_path.read_text(encoding="utf-8")
            config = Aria2Config.model_validate(json.loads(raw))
        except FileNotFoundError:
            return self.default_url
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(f"Ignoring {self.config_path}: {e}")
            return self.default_url
        return config.url or self.default_url

    # =========================================================================
    # Status
    # =========================================================================

    async def get_version(self, data: Any = None) -> str:
        """aria2 version, cached after the first answer. Empty if unreachable."""
        if self._version:
            return self._version

        try:
            result = await self.rpc.call("aria2.getVersion")
        except Aria2Error as e:
            logger.warning(f"aria2 version unavailable: {e}")
            return ""

        if isinstance(result, dict):
            self._version = str(result.get("version", ""))
        return self._version

    async def get_stat(self, data: Any = None) -> dict[str, Any]:
        """Global speed plus active, waiting and stopped tasks in one round trip."""
        global_stat, active, waiting, stopped = await self.rpc.multicall([
            ("aria2.getGlobalStat", []),
            ("aria2.tellActive", [TASK_KEYS]),
            ("aria2.tellWaiting", [0, TASK_WINDOW, TASK_KEYS]),
            ("aria2.tellStopped", [0, TASK_WINDOW, TASK_KEYS]),
        ])

        speed = global_stat.get("downloadSpeed") if isinstance(global_stat, dict) else None
        stat = Aria2Stat(
            speed=readable_size(speed) + "B/s",
            active_tasks=[parse_task(t) for t in active or []],
            waiting_tasks=[parse_task(t) for t in waiting or []],
            stoped_tasks=[parse_task(t) for t in stopped or []],
        )
        return stat.model_dump(by_alias=True)

    # =========================================================================
    # Task control
    # =========================================================================

    async def start(self, data: Any) -> None:
        await self._for_each_gid("start", data, "aria2.unpause")

    async def pause(self, data: Any) -> None:
        await self._for_each_gid("pause", data, "aria2.pause")

    async def remove(self, data: Any) -> None:
        await self._for_each_gid("remove", data, "aria2.forceRemove", "aria2.removeDownloadResult")

    async def remove_stoped(self, data: Any) -> None:
        await self._for_each_gid("removeStoped", data, "aria2.removeDownloadResult")

    async def start_all(self, data: Any = None) -> None:
        await self.rpc.call("aria2.unpauseAll")

    async def pause_all(self, data: Any = None) -> None:
        await self.rpc.call("aria2.pauseAll")

    async def remove_all_stoped(self, data: Any = None) -> None:
        await self.rpc.call("aria2.purgeDownloadResult")

    async def _for_each_gid(self, action: str, data: Any, *methods: str) -> None:
        """
        Apply methods to every gid in data.

        Every method is tried on every gid. A gid fails only when all of its
        methods fail; failures are reported together at the end.
        """
        if not isinstance(data, list):
            raise ActionError(f"{action} invalid gids")

        errors: list[str] = []
        for gid in data:
            failures: list[str] = []
            for method in methods:
                try:
                    await self.rpc.call(method, [str(gid)])
                except Aria2Error as e:
                    failures.append(str(e))
            if len(failures) == len(methods):
                errors.append(f"{gid}: {failures[-1]}")

        if errors:
            raise Aria2Error("; ".join(errors))

    # =========================================================================
    # Library API
    # =========================================================================

    async def add_download(self, url: str, filename: str, header: str | None = None) -> str:
        """
        Queue a download.

        Args:
            url: Source URL
            filename: Output file name (aria2 "out" option)
            header: Optional extra request header, e.g. "Cookie: a=b"

        Returns:
            gid of the new download
        """
        options = {"out": filename}
        if header:
            options["header"] = header

        result = await self.rpc.call("aria2.addUri", [[url], options])
        return result if isinstance(result, str) else ""
