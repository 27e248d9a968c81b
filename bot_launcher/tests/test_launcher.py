import asyncio
import uuid

import pytest

from bot_launcher.errors import DuplicateInstanceError, InstanceNotFoundError, InstanceStartError
from bot_launcher.launcher import FleetLauncher
from bot_launcher.models import DeploymentRequest, InstanceStatus
from bot_launcher.runtime import ProcessRuntime

MEETING_URL = "https://teams.live.com/meet/9312345678901?p=abcdef"


class FakeRuntime(ProcessRuntime):
    """Mimics a container runtime that refuses duplicate names."""

    def __init__(self, delay=0, fail=None):
        self.delay = delay
        self.fail = fail
        self.running = {}
        self.started = []
        self.stopped = []

    async def start(self, spec):
        await asyncio.sleep(self.delay)
        if self.fail:
            raise self.fail
        if spec.name in self.running:
            raise InstanceStartError(spec.bot_id, f'Conflict. The container name "/{spec.name}" is already in use')
        self.running[spec.name] = spec
        self.started.append(spec)
        return f"cid-{spec.name}"

    async def stop(self, name):
        self.running.pop(name, None)
        self.stopped.append(name)

    async def is_running(self, name):
        return name in self.running


def make_request(**overrides):
    body = {"meetingUrl": MEETING_URL, "notifierUrls": ["http://localhost:4100/api/wh/bot"]}
    body.update(overrides)
    return DeploymentRequest(**body)


@pytest.mark.asyncio
async def test_deploy_starts_named_instance():
    runtime = FakeRuntime()
    launcher = FleetLauncher(runtime, network="client-dev-network")
    bot_id = str(uuid.uuid4())

    result = await launcher.deploy(make_request(botId=bot_id, port=4150))

    assert result.bot_id == bot_id
    assert result.port == 4150
    assert result.container_name == f"teams-bot-{bot_id}"

    [spec] = runtime.started
    env = spec.environment()
    assert env["PORT"] == "4150"
    assert env["BOT_ID"] == bot_id
    assert env["NOTIFIER_URLS"] == "http://localhost:4100/api/wh/bot"
    assert spec.network == "client-dev-network"

    [record] = await launcher.list_instances()
    assert record.status is InstanceStatus.RUNNING


@pytest.mark.asyncio
async def test_deploy_assigns_port_in_default_range():
    launcher = FleetLauncher(FakeRuntime())

    result = await launcher.deploy(make_request())

    assert 4100 <= result.port <= 4199
    uuid.UUID(result.bot_id)


@pytest.mark.asyncio
async def test_same_bot_id_never_runs_twice():
    runtime = FakeRuntime(delay=0.01)
    launcher = FleetLauncher(runtime)
    bot_id = str(uuid.uuid4())

    results = await asyncio.gather(
        launcher.deploy(make_request(botId=bot_id)),
        launcher.deploy(make_request(botId=bot_id)),
        return_exceptions=True,
    )

    assert sum(1 for r in results if isinstance(r, DuplicateInstanceError)) == 1
    assert len(runtime.started) == 1


@pytest.mark.asyncio
async def test_runtime_failure_leaves_no_record():
    launcher = FleetLauncher(FakeRuntime(fail=InstanceStartError("x", "image not found")))

    with pytest.raises(InstanceStartError, match="image not found"):
        await launcher.deploy(make_request())

    assert await launcher.list_instances() == []


@pytest.mark.asyncio
async def test_unexpected_runtime_error_is_wrapped():
    bot_id = str(uuid.uuid4())
    launcher = FleetLauncher(FakeRuntime(fail=OSError("socket gone")))

    with pytest.raises(InstanceStartError) as exc:
        await launcher.deploy(make_request(botId=bot_id))

    assert exc.value.bot_id == bot_id
    assert await launcher.registry.get(bot_id) is None


@pytest.mark.asyncio
async def test_bot_id_can_be_redeployed_after_failed_start():
    runtime = FakeRuntime(fail=InstanceStartError("x", "boom"))
    launcher = FleetLauncher(runtime)
    bot_id = str(uuid.uuid4())

    with pytest.raises(InstanceStartError):
        await launcher.deploy(make_request(botId=bot_id))
    runtime.fail = None

    result = await launcher.deploy(make_request(botId=bot_id))
    assert result.bot_id == bot_id


@pytest.mark.asyncio
async def test_stop_forgets_instance():
    runtime = FakeRuntime()
    launcher = FleetLauncher(runtime, container_prefix="bot")
    result = await launcher.deploy(make_request())

    record = await launcher.stop(result.bot_id)

    assert record.container_name == f"bot-{result.bot_id}"
    assert runtime.stopped == [record.container_name]
    assert await launcher.list_instances() == []
    with pytest.raises(InstanceNotFoundError):
        await launcher.stop(result.bot_id)


@pytest.mark.asyncio
async def test_redeploy_after_instance_exited_on_its_own():
    runtime = FakeRuntime()
    launcher = FleetLauncher(runtime)
    bot_id = str(uuid.uuid4())
    name = f"teams-bot-{bot_id}"

    await launcher.deploy(make_request(botId=bot_id))
    with pytest.raises(DuplicateInstanceError):
        await launcher.deploy(make_request(botId=bot_id))

    runtime.running.pop(name)
    await launcher.deploy(make_request(botId=bot_id))

    assert [spec.name for spec in runtime.started] == [name, name]
    assert runtime.stopped == [name]
    [record] = await launcher.list_instances()
    assert record.status is InstanceStatus.RUNNING
