"""Extract the issues of a GitHub repository through a local Temporal server.

Usage:
    GITHUB_TOKEN=... GITHUB_ORG=... GITHUB_REPO=... python examples/application_github.py
"""

import asyncio
import os
from typing import Any, Dict

from sync_sdk.activities import SyncActivities
from sync_sdk.clients.temporal import TemporalClient
from sync_sdk.events.models import EventType
from sync_sdk.observability.logger_adaptor import get_logger
from sync_sdk.worker import Worker
from sync_sdk.workflows import SyncWorkflow

logger = get_logger(__name__)


async def application_github(daemon: bool = True) -> Dict[str, Any]:
    logger.info("Starting application_github")

    client = TemporalClient(application_name="github-sync")
    await client.load()

    activities = SyncActivities()
    worker = Worker(
        workflow_client=client,
        workflow_activities=SyncWorkflow.get_activities(activities),
        workflow_classes=[SyncWorkflow],
    )

    event = {
        "event_type": EventType.EXTRACTION_DATA_START.value,
        "credentials": {"token": os.environ["GITHUB_TOKEN"]},
        "scope": {
            "org_name": os.environ["GITHUB_ORG"],
            "unit_name": os.environ["GITHUB_REPO"],
        },
        "mode": os.getenv("SYNC_MODE", "full"),
    }
    workflow_response = await client.start_workflow(event, SyncWorkflow)

    await worker.start(daemon=daemon)
    return workflow_response


if __name__ == "__main__":
    asyncio.run(application_github(daemon=False))
