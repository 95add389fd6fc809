"""
Tests for the daemon service — method dispatch over real components with
a mock launcher.
"""

import asyncio
import uuid
from pathlib import Path

import pytest

from alloy.adapters.mock import MockLauncher
from alloy.core.config.settings import load_settings
from alloy.core.errors import (
    InvalidInputError,
    InvalidParamsError,
    MethodNotFoundError,
    NotFoundError,
)
from alloy.core.persistence.bottle_store import BottleStore
from alloy.core.services.runtime_registry import RuntimeRegistry
from alloy.daemon.service import DaemonService
from tests.helpers import make_runtime, write_recipe


@pytest.fixture
def service(store: BottleStore, registry: RuntimeRegistry, recipe_dir: Path, launcher) -> DaemonService:
    return DaemonService(store, registry, recipe_dir, launcher)


def _dispatch(service: DaemonService, method: str, params=None) -> dict:
    return asyncio.run(service.dispatch(method, params))


def _create(service: DaemonService, name: str = "My Game") -> dict:
    return _dispatch(service, "bottle.create", {"name": name, "wine_version": "7.0"})["bottle"]


class TestServiceMethods:
    def test_ping(self, service):
        assert _dispatch(service, "service.ping") == {"status": "ok"}

    def test_info(self, service, store, recipe_dir):
        info = _dispatch(service, "service.info")
        assert info["version"] == "0.1.0"
        assert info["bottle_root"] == str(store.root)
        assert info["recipe_dir"] == str(recipe_dir)
        assert info["launcher"] == "mock"
        assert [rt["label"] for rt in info["runtimes"]] == ["wine x86_64 7.0"]

    def test_runtime_list(self, service):
        runtimes = _dispatch(service, "runtime.list")["runtimes"]
        assert runtimes[0]["channel"] == "rossetta"
        assert runtimes[0]["version"] == "7.0"

    def test_unknown_method(self, service):
        with pytest.raises(MethodNotFoundError):
            _dispatch(service, "bottle.explode")

    def test_methods_listed(self, service):
        assert "recipe.apply" in service.methods
        assert "shortcut.create" in service.methods


class TestBottleMethods:
    def test_end_to_end_lifecycle(self, service, store):
        bottle = _create(service, "My Game")
        assert bottle["name"] == "my-game"
        assert bottle["environment"] == []
        assert store.bottle_prefix(uuid.UUID(bottle["id"])).is_dir()

        listed = _dispatch(service, "bottle.list")["bottles"]
        assert [b["id"] for b in listed] == [bottle["id"]]

        assert _dispatch(service, "bottle.delete", {"id": bottle["id"]}) == {
            "deleted": bottle["id"]
        }
        assert _dispatch(service, "bottle.list") == {"bottles": []}

    def test_create_picks_runtime(self, service):
        bottle = _create(service)
        assert bottle["wine_runtime"]["label"] == "wine x86_64 7.0"
        assert bottle["wine_runtime"]["channel"] == "rossetta"

    def test_create_invalid_name(self, service):
        with pytest.raises(InvalidInputError):
            _dispatch(service, "bottle.create", {"name": "???", "wine_version": "7.0"})

    @pytest.mark.parametrize(
        "params",
        [None, {}, {"name": "x"}, {"wine_version": "7.0"}, {"name": 5, "wine_version": "7.0"}],
    )
    def test_create_invalid_params(self, service, params):
        with pytest.raises(InvalidParamsError, match="expected params"):
            _dispatch(service, "bottle.create", params)

    def test_delete_unknown(self, service):
        with pytest.raises(NotFoundError):
            _dispatch(service, "bottle.delete", {"id": str(uuid.uuid4())})

    def test_delete_bad_id(self, service):
        with pytest.raises(InvalidParamsError):
            _dispatch(service, "bottle.delete", {"id": "not-a-uuid"})

    def test_run_reports_exit_status(self, service, launcher: MockLauncher):
        bottle = _create(service)
        launcher.set_exit_code("wine64", 3)

        result = _dispatch(
            service,
            "bottle.run",
            {"id": bottle["id"], "executable": "C:\\game.exe", "args": ["-windowed"]},
        )
        assert result == {"exit_status": 3, "success": False}
        call = launcher.calls[0]
        assert str(call.executable) == bottle["wine_runtime"]["wine64_path"]
        assert call.args == ["C:\\game.exe", "-windowed"]

    def test_run_unknown_bottle(self, service):
        with pytest.raises(NotFoundError):
            _dispatch(service, "bottle.run", {"id": str(uuid.uuid4()), "executable": "a.exe"})


class TestRecipeMethods:
    def test_list(self, service, recipe_dir):
        write_recipe(recipe_dir, "dxvk", "id: dxvk\nname: DXVK\nsteps:\n  - env: {A: b}\n")
        assert _dispatch(service, "recipe.list") == {
            "recipes": [{"id": "dxvk", "name": "DXVK", "description": None, "steps": 1}]
        }

    def test_apply(self, service, recipe_dir, store):
        write_recipe(recipe_dir, "dxvk", "id: dxvk\nname: DXVK\nsteps:\n  - env: {DXVK_HUD: fps}\n")
        bottle = _create(service)

        result = _dispatch(
            service, "recipe.apply", {"bottle_id": bottle["id"], "recipe_id": "dxvk"}
        )
        assert result["applied"] == "dxvk"
        assert result["steps"] == 1

        persisted = asyncio.run(store.record(uuid.UUID(bottle["id"])))
        assert persisted.env_dict() == {"DXVK_HUD": "fps"}

    def test_apply_unknown_recipe(self, service):
        bottle = _create(service)
        with pytest.raises(NotFoundError):
            _dispatch(service, "recipe.apply", {"bottle_id": bottle["id"], "recipe_id": "nope"})

    def test_delete_waits_for_apply(self, service, recipe_dir, store, launcher):
        """A delete issued mid-apply runs only after the apply finished."""
        write_recipe(recipe_dir, "slow", "id: slow\nname: Slow\nsteps:\n  - run: a.exe\n  - env: {A: b}\n")
        bottle = _create(service)
        started = asyncio.Event()
        release = asyncio.Event()
        real_launch = launcher.launch

        async def slow_launch(*args, **kwargs):
            started.set()
            await release.wait()
            return await real_launch(*args, **kwargs)

        launcher.launch = slow_launch

        async def scenario() -> tuple[dict, dict]:
            apply_task = asyncio.create_task(
                service.dispatch("recipe.apply", {"bottle_id": bottle["id"], "recipe_id": "slow"})
            )
            await started.wait()
            delete_task = asyncio.create_task(service.dispatch("bottle.delete", {"id": bottle["id"]}))
            await asyncio.sleep(0.01)
            assert not delete_task.done()
            release.set()
            return await apply_task, await delete_task

        applied, deleted = asyncio.run(scenario())
        assert applied["steps"] == 2
        assert deleted == {"deleted": bottle["id"]}
        assert not store.bottle_dir(uuid.UUID(bottle["id"])).exists()


class TestShortcutMethod:
    def test_create_shortcut(self, service, tmp_path):
        bottle = _create(service)
        result = _dispatch(
            service,
            "shortcut.create",
            {
                "bottle_id": bottle["id"],
                "name": "My Game",
                "executable": "C:\\game.exe",
                "destination": str(tmp_path / "apps"),
            },
        )
        bundle = Path(result["shortcut"])
        assert bundle == tmp_path / "apps" / "My Game.app"
        assert (bundle / "Contents" / "MacOS" / "launch").is_file()


class TestFromSettings:
    def test_builds_components(self, tmp_path: Path):
        make_runtime(tmp_path / "data" / "runtime")
        settings = load_settings(
            environ={"SILICON_ALLOY_DATA_DIR": str(tmp_path / "data")},
        )
        service = DaemonService.from_settings(settings, launcher=MockLauncher())

        assert service.store.root == tmp_path / "data" / "bottles"
        assert len(service.registry.runtimes) == 1
        assert (tmp_path / "data" / "logs").is_dir()
