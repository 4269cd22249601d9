import os
import re
from typing import Any, Dict, List, Optional

import orjson

from sync_sdk.common.error_codes import SinkError
from sync_sdk.constants import APPLICATION_NAME, OUTPUT_PATH_TEMPLATE, TEMPORARY_PATH
from sync_sdk.repositories import Normalizer, Repository
from sync_sdk.observability.logger_adaptor import get_logger

logger = get_logger(__name__)

BATCH_FILE_PATTERN = re.compile(r"^(\d+)\.jsonl$")


def build_output_path(sync_unit_id: str, repository: str) -> str:
    """Directory holding the batches of one repository.

    Example:
        >>> build_output_path("1296269", "issues")
        './local/tmp/artifacts/apps/sync-sdk/1296269/issues'
    """
    return os.path.join(
        TEMPORARY_PATH,
        OUTPUT_PATH_TEMPLATE.format(
            application_name=APPLICATION_NAME,
            sync_unit_id=sync_unit_id,
            repository=repository,
        ),
    )


def batch_path_gen(batch_number: int) -> str:
    return f"{batch_number:05d}.jsonl"


def last_batch_number(output_path: str) -> int:
    """Highest batch number already written to ``output_path``, 0 if none."""
    try:
        names = os.listdir(output_path)
    except FileNotFoundError:
        return 0
    numbers = [
        int(match.group(1))
        for match in (BATCH_FILE_PATTERN.match(name) for name in names)
        if match
    ]
    return max(numbers, default=0)


class JsonRepository(Repository):
    """Writes every push as one JSON Lines batch file.

    Batches are numbered after the ones already present in ``output_path``,
    so repositories built by later invocations of the same pass append to
    what earlier invocations sank. A batch is written to a temporary file and
    renamed into place, so a failed push leaves no partial batch behind.

    Args:
        item_type (str): Repository name.
        output_path (str): Directory receiving the batch files.
        normalize (Optional[Normalizer]): Record normalizer.
    """

    def __init__(
        self,
        item_type: str,
        output_path: str,
        normalize: Optional[Normalizer] = None,
    ):
        super().__init__(item_type, normalize)
        self.output_path = output_path

    async def _write(self, records: List[Dict[str, Any]]) -> None:
        path = temp_path = None
        try:
            os.makedirs(self.output_path, exist_ok=True)
            path = os.path.join(
                self.output_path,
                batch_path_gen(last_batch_number(self.output_path) + 1),
            )
            temp_path = f"{path}.tmp"
            with open(temp_path, "wb") as f:
                for record in records:
                    f.write(orjson.dumps(record, option=orjson.OPT_APPEND_NEWLINE))
            os.replace(temp_path, path)
        except (OSError, TypeError) as e:
            if temp_path and os.path.exists(temp_path):
                os.remove(temp_path)
            logger.error(
                f"Failed to write {self.item_type} batch to {path or self.output_path}: {e}"
            )
            raise SinkError(f"Failed to write {self.item_type} batch: {e}") from e
