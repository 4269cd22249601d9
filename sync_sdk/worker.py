"""Worker module for managing Temporal workers.

This module provides the Worker class for running the extraction workflow and
its activities on a Temporal task queue.
"""

import asyncio
import threading
from typing import Any, List, Optional, Sequence

import uvloop
from temporalio.types import CallableType

from sync_sdk.clients.temporal import TemporalClient
from sync_sdk.constants import MAX_CONCURRENT_ACTIVITIES
from sync_sdk.observability.logger_adaptor import get_logger

logger = get_logger(__name__)
asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())

DEFAULT_PASSTHROUGH_MODULES = [
    "sync_sdk",
    "pydantic",
    "loguru",
    "httpx",
    "orjson",
    "dotenv",
]


class Worker:
    """Worker class for managing Temporal workflow workers.

    Attributes:
        workflow_client (Optional[TemporalClient]): Client for interacting with Temporal.
        workflow_activities (Sequence[CallableType]): Activity functions.
        workflow_classes (List[Any]): Workflow classes.
        passthrough_modules (List[str]): Modules passed through the workflow sandbox.
        max_concurrent_activities (int): Maximum number of concurrent activities.
    """

    def __init__(
        self,
        workflow_client: Optional[TemporalClient] = None,
        workflow_activities: Sequence[CallableType] = (),
        passthrough_modules: Optional[List[str]] = None,
        workflow_classes: Sequence[Any] = (),
        max_concurrent_activities: int = MAX_CONCURRENT_ACTIVITIES,
    ):
        self.workflow_client = workflow_client
        self.workflow_activities = workflow_activities
        self.workflow_classes = workflow_classes
        self.passthrough_modules = passthrough_modules or list(
            DEFAULT_PASSTHROUGH_MODULES
        )
        self.max_concurrent_activities = max_concurrent_activities

    async def start(self, daemon: bool = False) -> None:
        """Start the Temporal worker.

        Args:
            daemon (bool, optional): Whether to run the worker in a daemon thread.
                Defaults to False.

        Raises:
            ValueError: If workflow_client is not set.
        """
        if daemon:
            worker_thread = threading.Thread(
                target=lambda: asyncio.run(self.start(daemon=False)), daemon=True
            )
            worker_thread.start()
            return

        if not self.workflow_client:
            raise ValueError("Workflow client is not set")

        try:
            worker = self.workflow_client.create_worker(
                activities=self.workflow_activities,
                workflow_classes=self.workflow_classes,
                passthrough_modules=self.passthrough_modules,
                max_concurrent_activities=self.max_concurrent_activities,
            )

            logger.info(
                f"Starting worker with task queue: {self.workflow_client.worker_task_queue}"
            )
            await worker.run()
        except Exception as e:
            logger.error(f"Error starting worker: {e}")
            raise
