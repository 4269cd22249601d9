"""File-backed state store for checkpoints and stored credentials."""

import json
import os
from enum import Enum
from typing import Any, Dict, Iterable, Optional

from pydantic import ValidationError as PydanticValidationError
from temporalio import activity

from sync_sdk.common.error_codes import STATE_STORE_ERRORS, StateStoreError
from sync_sdk.constants import (
    APPLICATION_NAME,
    STATE_STORE_PATH_TEMPLATE,
    TEMPORARY_PATH,
)
from sync_sdk.extraction.models import SyncScope
from sync_sdk.extraction.state import ExtractionState, RecordTypeKey
from sync_sdk.observability.logger_adaptor import get_logger

logger = get_logger(__name__)
activity.logger = logger


class StateType(Enum):
    EXTRACTION = "extraction"
    CREDENTIALS = "credentials"


def build_state_store_path(id: str, state_type: StateType) -> str:
    """Build the state file path for the given id and type.

    Args:
        id: The unique identifier for the state.
        state_type: The type of state (extraction, credentials).

    Returns:
        str: The constructed state file path.

    Example:
        >>> build_state_store_path("1296269", StateType.EXTRACTION)
        './local/tmp/persistent-artifacts/apps/sync-sdk/extraction/1296269/state.json'
    """
    return os.path.join(
        TEMPORARY_PATH,
        STATE_STORE_PATH_TEMPLATE.format(
            application_name=APPLICATION_NAME, state_type=state_type.value, id=id
        ),
    )


class StateStore:
    """Unified state store service for handling state management."""

    @classmethod
    async def get_state(cls, id: str, type: StateType) -> Dict[str, Any]:
        """Get state from the store.

        Args:
            id: The key to retrieve the state for.
            type: The type of state to retrieve.

        Returns:
            Dict[str, Any]: The stored state, or an empty dict when none exists.

        Raises:
            StateStoreError: If the state file exists but cannot be read.
        """
        state_file_path = build_state_store_path(id, type)
        try:
            with open(state_file_path, "r") as file:
                state = json.load(file)
        except FileNotFoundError:
            logger.info(
                f"No state found for {type.value} with id '{id}', returning empty dict"
            )
            return {}
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read state: {str(e)}")
            raise StateStoreError(
                f"Failed to read {type.value} state '{id}': {e}",
                STATE_STORE_ERRORS["STATE_READ_ERROR"],
            ) from e

        logger.debug(f"State object loaded for {id} with type {type.value}")
        return state

    @classmethod
    async def save_state_object(
        cls, id: str, value: Dict[str, Any], type: StateType
    ) -> Dict[str, Any]:
        """Replace the stored state object.

        The file is written next to its destination and renamed into place, so
        a reader never sees a partially written state.

        Args:
            id: The id of the state.
            value: The value of the state.
            type: The type of the state.

        Returns:
            Dict[str, Any]: The saved state.

        Raises:
            StateStoreError: If the state cannot be written.
        """
        state_file_path = build_state_store_path(id, type)
        temp_path = f"{state_file_path}.tmp"
        try:
            os.makedirs(os.path.dirname(state_file_path), exist_ok=True)
            with open(temp_path, "w") as file:
                json.dump(value, file)
            os.replace(temp_path, state_file_path)
        except (OSError, TypeError) as e:
            logger.error(f"Failed to store state: {str(e)}")
            raise StateStoreError(
                f"Failed to write {type.value} state '{id}': {e}",
                STATE_STORE_ERRORS["STATE_WRITE_ERROR"],
            ) from e
        return value


class CheckpointStateStore:
    """Loads and saves ``ExtractionState`` checkpoints through ``StateStore``."""

    @classmethod
    async def load(
        cls,
        state_id: str,
        record_types: Iterable[RecordTypeKey],
        scope: Optional[SyncScope] = None,
    ) -> ExtractionState:
        """Load the checkpoint for ``state_id`` or start a fresh one.

        The event's scope replaces the stored one when given, and record types
        unknown to the stored checkpoint are added as not yet started.
        """
        raw = await StateStore.get_state(state_id, StateType.EXTRACTION)
        if not raw:
            logger.info(f"Starting a new checkpoint for {state_id}")
            return ExtractionState.initial(record_types, scope)

        try:
            state = ExtractionState.model_validate(raw)
        except PydanticValidationError as e:
            raise StateStoreError(
                f"Checkpoint '{state_id}' is malformed: {e}",
                STATE_STORE_ERRORS["STATE_READ_ERROR"],
            ) from e
        if scope is not None:
            state.scope = scope
        state.ensure_types(record_types)
        return state

    @classmethod
    async def save(cls, state_id: str, state: ExtractionState) -> None:
        await StateStore.save_state_object(
            state_id, state.model_dump(mode="json"), StateType.EXTRACTION
        )
