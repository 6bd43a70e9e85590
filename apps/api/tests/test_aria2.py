"""Tests for the aria2 module against a fake JSON-RPC endpoint."""

import json
from pathlib import Path
from typing import Any

import httpx
import pytest

from lixian.actions import ActionDispatcher, ActionError
from lixian.core.models import ActionRequest
from lixian.modules.aria2 import TASK_KEYS, Aria2Error, Aria2Module, parse_task

URL = "http://aria2.test/jsonrpc"


class FakeAria2:
    """Answers JSON-RPC calls from canned results and records them."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, list[Any]]] = []
        self.results: dict[str, Any] = {}
        self.errors: dict[str, str] = {}
        self.down = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if self.down:
            raise httpx.ConnectError("Connection refused", request=request)

        payload = json.loads(request.content)
        assert payload["jsonrpc"] == "2.0"
        method = payload["method"]
        self.calls.append((str(request.url), method, payload["params"]))

        if method in self.errors:
            return httpx.Response(
                400,
                json={
                    "jsonrpc": "2.0",
                    "id": payload["id"],
                    "error": {"code": 1, "message": self.errors[method]},
                },
            )
        return httpx.Response(
            200,
            json={"jsonrpc": "2.0", "id": payload["id"], "result": self.results.get(method, "OK")},
        )

    @property
    def methods(self) -> list[str]:
        return [method for _, method, _ in self.calls]


def make_task(gid: str, total: str, completed: str, path: str, status: str = "active") -> dict[str, Any]:
    return {
        "gid": gid,
        "status": status,
        "totalLength": total,
        "completedLength": completed,
        "downloadSpeed": "2048",
        "connections": "4",
        "files": [{"path": path, "length": total}],
    }


@pytest.fixture
def fake() -> FakeAria2:
    return FakeAria2()


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "config" / "aria2.json"


@pytest.fixture
async def aria2(fake: FakeAria2, config_path: Path):
    module = Aria2Module(
        default_url=URL,
        config_path=config_path,
        transport=httpx.MockTransport(fake),
    )
    await module.init()
    yield module
    await module.close()


class TestParseTask:
    """Test task row extraction."""

    def test_progress_and_filename(self) -> None:
        task = parse_task(make_task("a1", "3", "1", "/downloads/movies/film.mkv"))

        assert task.gid == "a1"
        assert task.filename == "film.mkv"
        assert task.size == 3
        assert task.completed_length == 1
        assert task.progress == 33.33
        assert task.speed == 2048
        assert task.connections == "4"

    def test_unknown_size_has_zero_progress(self) -> None:
        """Magnet metadata downloads report totalLength 0."""
        task = parse_task(make_task("a2", "0", "0", "[METADATA]abc"))

        assert task.progress == 0.0
        assert task.filename == "[METADATA]abc"

    def test_no_files(self) -> None:
        item = make_task("a3", "10", "5", "")
        item["files"] = []

        task = parse_task(item)

        assert task.filename == ""
        assert task.progress == 50.0


class TestAria2Status:
    """getStat, getVersion and configuration."""

    @pytest.mark.asyncio
    async def test_get_stat(self, aria2: Aria2Module, fake: FakeAria2) -> None:
        """One multicall yields speed and the three task lists."""
        fake.results["system.multicall"] = [
            [{"downloadSpeed": "1536", "numActive": "1"}],
            [[make_task("a1", "2048", "512", "/dl/a.iso")]],
            [[]],
            [[make_task("s1", "100", "100", "/dl/done.zip", status="complete")]],
        ]

        stat = await aria2.get_stat()

        assert fake.methods == ["system.multicall"]
        calls = fake.calls[0][2][0]
        assert [c["methodName"] for c in calls] == [
            "aria2.getGlobalStat",
            "aria2.tellActive",
            "aria2.tellWaiting",
            "aria2.tellStopped",
        ]
        assert calls[1]["params"] == [TASK_KEYS]
        assert calls[2]["params"] == [0, 1000, TASK_KEYS]

        assert stat["speed"] == "1.50KB/s"
        assert stat["waitingTasks"] == []
        active = stat["activeTasks"][0]
        assert active["filename"] == "a.iso"
        assert active["completedLength"] == 512
        assert active["progress"] == 25.0
        assert stat["stopedTasks"][0]["status"] == "complete"

    @pytest.mark.asyncio
    async def test_get_stat_fault(self, aria2: Aria2Module, fake: FakeAria2) -> None:
        """A fault inside the multicall is an error."""
        fake.results["system.multicall"] = [
            [{"downloadSpeed": "0"}],
            {"faultCode": 1, "faultString": "Unauthorized"},
            [[]],
            [[]],
        ]

        with pytest.raises(Aria2Error, match="Unauthorized"):
            await aria2.get_stat()

    @pytest.mark.asyncio
    async def test_get_version_is_cached(self, aria2: Aria2Module, fake: FakeAria2) -> None:
        fake.results["aria2.getVersion"] = {"version": "1.37.0", "enabledFeatures": []}

        assert await aria2.get_version() == "1.37.0"
        assert await aria2.get_version() == "1.37.0"
        assert fake.methods == ["aria2.getVersion"]

    @pytest.mark.asyncio
    async def test_get_version_unreachable(self, aria2: Aria2Module, fake: FakeAria2) -> None:
        """An unreachable daemon yields an empty version, not an error."""
        fake.down = True

        assert await aria2.get_version() == ""

    @pytest.mark.asyncio
    async def test_unreachable_is_aria2_error(self, aria2: Aria2Module, fake: FakeAria2) -> None:
        fake.down = True

        with pytest.raises(Aria2Error, match="Cannot connect"):
            await aria2.start_all()

    @pytest.mark.asyncio
    async def test_get_config_default(self, aria2: Aria2Module) -> None:
        assert await aria2.get_config() == {"url": URL}

    @pytest.mark.asyncio
    async def test_save_config(self, aria2: Aria2Module, fake: FakeAria2, config_path: Path) -> None:
        """New URL is persisted and used by later calls."""
        fake.results["aria2.getVersion"] = {"version": "1.36.0"}
        await aria2.get_version()

        result = await aria2.save_config({"url": " http://nas:6800/jsonrpc "})
        await aria2.get_version()

        assert result == {"url": "http://nas:6800/jsonrpc"}
        assert json.loads(config_path.read_text()) == {"url": "http://nas:6800/jsonrpc"}
        assert fake.calls[-1][0] == "http://nas:6800/jsonrpc"
        assert fake.methods == ["aria2.getVersion", "aria2.getVersion"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("data", [None, {}, {"url": ""}, {"url": 5}, ["http://x"]])
    async def test_save_config_invalid(self, aria2: Aria2Module, data: Any) -> None:
        with pytest.raises(ActionError, match="saveConfig invalid url"):
            await aria2.save_config(data)

    @pytest.mark.asyncio
    async def test_init_loads_config_file(self, fake: FakeAria2, config_path: Path) -> None:
        config_path.parent.mkdir(parents=True)
        config_path.write_text('{"url": "http://box:6800/jsonrpc"}')
        module = Aria2Module(default_url=URL, config_path=config_path, transport=httpx.MockTransport(fake))

        await module.init()
        try:
            assert module.url == "http://box:6800/jsonrpc"
        finally:
            await module.close()

    @pytest.mark.asyncio
    async def test_init_ignores_malformed_config(self, fake: FakeAria2, config_path: Path) -> None:
        config_path.parent.mkdir(parents=True)
        config_path.write_text("{url: nope")
        module = Aria2Module(default_url=URL, config_path=config_path, transport=httpx.MockTransport(fake))

        await module.init()
        try:
            assert module.url == URL
        finally:
            await module.close()

    @pytest.mark.asyncio
    async def test_not_initialized(self, config_path: Path) -> None:
        module = Aria2Module(default_url=URL, config_path=config_path)

        with pytest.raises(Aria2Error, match="not initialized"):
            await module.pause_all()

    @pytest.mark.asyncio
    async def test_save_config_not_initialized_writes_nothing(self, config_path: Path) -> None:
        """The config file is only written when the URL can be switched too."""
        module = Aria2Module(default_url=URL, config_path=config_path)

        with pytest.raises(Aria2Error, match="not initialized"):
            await module.save_config({"url": "http://nas:6800/jsonrpc"})

        assert not config_path.exists()


class TestAria2TaskControl:
    """start/pause/remove and the *All variants."""

    @pytest.mark.asyncio
    async def test_start_each_gid(self, aria2: Aria2Module, fake: FakeAria2) -> None:
        await aria2.start(["g1", "g2"])

        assert [(m, p) for _, m, p in fake.calls] == [
            ("aria2.unpause", ["g1"]),
            ("aria2.unpause", ["g2"]),
        ]

    @pytest.mark.asyncio
    async def test_remove_force_removes_then_clears_result(self, aria2: Aria2Module, fake: FakeAria2) -> None:
        await aria2.remove(["g1"])

        assert fake.methods == ["aria2.forceRemove", "aria2.removeDownloadResult"]

    @pytest.mark.asyncio
    async def test_remove_stopped_task(self, aria2: Aria2Module, fake: FakeAria2) -> None:
        """forceRemove fails for finished tasks; clearing the result is enough."""
        fake.errors["aria2.forceRemove"] = "Active Download not found for GID#g1"

        await aria2.remove(["g1"])

        assert fake.methods == ["aria2.forceRemove", "aria2.removeDownloadResult"]

    @pytest.mark.asyncio
    async def test_failures_reported_after_all_gids(self, aria2: Aria2Module, fake: FakeAria2) -> None:
        fake.errors["aria2.pause"] = "GID not found"

        with pytest.raises(Aria2Error) as exc_info:
            await aria2.pause(["g1", "g2"])

        assert fake.methods == ["aria2.pause", "aria2.pause"]
        assert "g1: aria2.pause: GID not found" in str(exc_info.value)
        assert "g2:" in str(exc_info.value)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "action, method",
        [
            ("start", "start"),
            ("pause", "pause"),
            ("remove", "remove"),
            ("removeStoped", "remove_stoped"),
        ],
    )
    async def test_invalid_gids(self, aria2: Aria2Module, action: str, method: str) -> None:
        with pytest.raises(ActionError, match=f"{action} invalid gids"):
            await getattr(aria2, method)({"gid": "g1"})

    @pytest.mark.asyncio
    async def test_all_variants(self, aria2: Aria2Module, fake: FakeAria2) -> None:
        await aria2.start_all()
        await aria2.pause_all()
        await aria2.remove_stoped(["g9"])
        await aria2.remove_all_stoped()

        assert fake.methods == [
            "aria2.unpauseAll",
            "aria2.pauseAll",
            "aria2.removeDownloadResult",
            "aria2.purgeDownloadResult",
        ]

    @pytest.mark.asyncio
    async def test_add_download(self, aria2: Aria2Module, fake: FakeAria2) -> None:
        fake.results["aria2.addUri"] = "2089b05ecca3d829"

        gid = await aria2.add_download("http://example.com/a.bin", "a.bin", "Cookie: gdriveid=x")

        assert gid == "2089b05ecca3d829"
        assert fake.calls[0][2] == [
            ["http://example.com/a.bin"],
            {"out": "a.bin", "header": "Cookie: gdriveid=x"},
        ]

    @pytest.mark.asyncio
    async def test_add_download_without_header(self, aria2: Aria2Module, fake: FakeAria2) -> None:
        await aria2.add_download("http://example.com/a.bin", "a.bin")

        assert fake.calls[0][2][1] == {"out": "a.bin"}


class TestAria2ThroughDispatcher:
    """Wire names reach the module."""

    @pytest.mark.asyncio
    async def test_dispatch_errors_land_in_err(self, aria2: Aria2Module, fake: FakeAria2) -> None:
        fake.errors["aria2.unpauseAll"] = "Unauthorized"
        dispatcher = ActionDispatcher()
        dispatcher.register(aria2)

        response = await dispatcher.dispatch(ActionRequest(module="aria2", action="startAll"))

        assert response.err == "aria2.unpauseAll: Unauthorized"

    @pytest.mark.asyncio
    async def test_every_action_is_exposed(self, aria2: Aria2Module) -> None:
        assert set(aria2.actions()) == {
            "getConfig",
            "saveConfig",
            "getVersion",
            "getStat",
            "start",
            "pause",
            "remove",
            "startAll",
            "pauseAll",
            "removeStoped",
            "removeAllStoped",
        }
