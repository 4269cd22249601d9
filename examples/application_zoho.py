"""Extract a Zoho Projects project through a local Temporal server.

Usage:
    ZOHO_TOKEN=... ZOHO_PORTAL_ID=... ZOHO_PROJECT_ID=... python examples/application_zoho.py
"""

import asyncio
import os
from typing import Any, Dict

from sync_sdk.activities import SyncActivities
from sync_sdk.clients.temporal import TemporalClient
from sync_sdk.events.models import EventType
from sync_sdk.handlers.zoho import ZohoHandler
from sync_sdk.observability.logger_adaptor import get_logger
from sync_sdk.worker import Worker
from sync_sdk.workflows import SyncWorkflow

logger = get_logger(__name__)


async def application_zoho(daemon: bool = True) -> Dict[str, Any]:
    logger.info("Starting application_zoho")

    client = TemporalClient(application_name="zoho-sync")
    await client.load()

    activities = SyncActivities(handler_class=ZohoHandler)
    worker = Worker(
        workflow_client=client,
        workflow_activities=SyncWorkflow.get_activities(activities),
        workflow_classes=[SyncWorkflow],
    )

    event = {
        "event_type": EventType.EXTRACTION_DATA_START.value,
        "credentials": {"token": os.environ["ZOHO_TOKEN"]},
        "scope": {
            "portal_id": os.environ["ZOHO_PORTAL_ID"],
            "project_id": os.environ["ZOHO_PROJECT_ID"],
        },
        "mode": os.getenv("SYNC_MODE", "full"),
    }
    workflow_response = await client.start_workflow(event, SyncWorkflow)

    await worker.start(daemon=daemon)
    return workflow_response


if __name__ == "__main__":
    asyncio.run(application_zoho(daemon=False))
