import uuid
from typing import Any, Dict, Optional, Sequence, Type

from temporalio.client import Client, WorkflowFailureError
from temporalio.types import CallableType, ClassType
from temporalio.worker import Worker
from temporalio.worker.workflow_sandbox import (
    SandboxedWorkflowRunner,
    SandboxRestrictions,
)

from sync_sdk.clients import ClientInterface
from sync_sdk.constants import (
    APPLICATION_NAME,
    WORKFLOW_HOST,
    WORKFLOW_NAMESPACE,
    WORKFLOW_PORT,
)
from sync_sdk.observability.logger_adaptor import get_logger
from sync_sdk.services.statestore import StateStore, StateType

logger = get_logger(__name__)


class TemporalClient(ClientInterface):
    """Temporal client implementation.

    This class provides functionality for interacting with Temporal workflows,
    including starting workflows and creating workers.

    Attributes:
        client: Temporal client instance.
        application_name (str): Name of the application.
        worker_task_queue (str): Task queue for the worker.
        host (str): Temporal server host.
        port (str): Temporal server port.
        namespace (str): Temporal namespace.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[str] = None,
        application_name: Optional[str] = None,
        namespace: Optional[str] = None,
    ):
        self.client: Optional[Client] = None
        self.application_name = application_name or APPLICATION_NAME
        self.worker_task_queue = self.get_worker_task_queue()
        self.host = host or WORKFLOW_HOST
        self.port = port or WORKFLOW_PORT
        self.namespace = namespace or WORKFLOW_NAMESPACE

    def get_worker_task_queue(self) -> str:
        return self.application_name

    def get_connection_string(self) -> str:
        return f"{self.host}:{self.port}"

    async def load(self, credentials: Optional[Dict[str, Any]] = None) -> None:
        """Connect to the Temporal server."""
        self.client = await Client.connect(
            self.get_connection_string(),
            namespace=self.namespace,
        )

    async def start_workflow(
        self, workflow_args: Dict[str, Any], workflow_class: Type[Any]
    ) -> Dict[str, Any]:
        """Start a workflow execution.

        Credentials are moved to the state store before the event is handed to
        Temporal, so they never appear in the workflow history; the event
        carries a ``credential_guid`` instead.

        Args:
            workflow_args (Dict[str, Any]): An ``ExtractionEvent`` as a dict,
                optionally with a ``workflow_id``.
            workflow_class (Type[Any]): The workflow class to execute.

        Returns:
            Dict[str, Any]: ``workflow_id`` and ``run_id`` of the execution.

        Raises:
            ValueError: If the client is not loaded.
            WorkflowFailureError: If the workflow fails to start.
        """
        if not self.client:
            raise ValueError("Client is not loaded")

        workflow_args = dict(workflow_args)
        if workflow_args.get("credentials"):
            credential_guid = str(uuid.uuid4())
            await StateStore.save_state_object(
                credential_guid, workflow_args.pop("credentials"), StateType.CREDENTIALS
            )
            workflow_args["credential_guid"] = credential_guid

        workflow_id = workflow_args.pop("workflow_id", None) or str(uuid.uuid4())

        try:
            handle = await self.client.start_workflow(
                workflow_class.run,
                workflow_args,
                id=workflow_id,
                task_queue=self.worker_task_queue,
            )
            logger.info(f"Workflow started: {handle.id} {handle.result_run_id}")
            return {"workflow_id": handle.id, "run_id": handle.result_run_id}
        except WorkflowFailureError as e:
            logger.error(f"Workflow failure: {e}")
            raise

    def create_worker(
        self,
        activities: Sequence[CallableType],
        workflow_classes: Sequence[ClassType],
        passthrough_modules: Sequence[str],
        max_concurrent_activities: Optional[int] = None,
    ) -> Worker:
        """Create a Temporal worker.

        Args:
            activities (Sequence[CallableType]): Activity functions to register.
            workflow_classes (Sequence[ClassType]): Workflow classes to register.
            passthrough_modules (Sequence[str]): Modules to pass through to the sandbox.
            max_concurrent_activities (Optional[int]): Activity slots of the worker.

        Returns:
            Worker: The created worker instance.

        Raises:
            ValueError: If the client is not loaded.
        """
        if not self.client:
            raise ValueError("Client is not loaded")

        return Worker(
            self.client,
            task_queue=self.worker_task_queue,
            workflows=workflow_classes,
            activities=activities,
            max_concurrent_activities=max_concurrent_activities,
            workflow_runner=SandboxedWorkflowRunner(
                restrictions=SandboxRestrictions.default.with_passthrough_modules(
                    *passthrough_modules
                )
            ),
        )
