from unittest.mock import AsyncMock, Mock

import pytest

from sync_sdk.clients.temporal import TemporalClient
from sync_sdk.worker import DEFAULT_PASSTHROUGH_MODULES, Worker


@pytest.fixture
def mock_workflow_client():
    workflow_client = Mock(spec=TemporalClient)
    workflow_client.worker_task_queue = "test_queue"
    workflow_client.application_name = "test_app"

    worker = Mock()
    worker.run = AsyncMock()
    worker.run.return_value = None

    workflow_client.create_worker = Mock()
    workflow_client.create_worker.return_value = worker
    return workflow_client


async def test_worker_should_raise_error_if_temporal_client_is_not_set():
    worker = Worker(workflow_client=None)
    with pytest.raises(ValueError, match="Workflow client is not set"):
        await worker.start(daemon=False)


async def test_worker_start(mock_workflow_client: TemporalClient):
    activities = [AsyncMock()]
    workflows = [AsyncMock()]
    worker = Worker(
        workflow_client=mock_workflow_client,
        workflow_activities=activities,
        workflow_classes=workflows,
        max_concurrent_activities=2,
    )

    await worker.start(daemon=False)

    mock_workflow_client.create_worker.assert_called_once_with(  # type: ignore
        activities=activities,
        workflow_classes=workflows,
        passthrough_modules=DEFAULT_PASSTHROUGH_MODULES,
        max_concurrent_activities=2,
    )
    mock_workflow_client.create_worker.return_value.run.assert_awaited_once()  # type: ignore


async def test_worker_start_propagates_errors(mock_workflow_client: TemporalClient):
    mock_workflow_client.create_worker.return_value.run.side_effect = RuntimeError(  # type: ignore
        "connection lost"
    )
    worker = Worker(workflow_client=mock_workflow_client)

    with pytest.raises(RuntimeError, match="connection lost"):
        await worker.start(daemon=False)
