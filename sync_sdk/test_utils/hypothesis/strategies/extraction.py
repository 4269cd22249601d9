from datetime import timezone
from typing import List

from hypothesis import strategies as st
from hypothesis.strategies import composite

from sync_sdk.extraction.models import SyncMode, SyncScope
from sync_sdk.extraction.state import ExtractionState, TypeProgress

# Strategy for generating identifier strings as sources hand them out
identifier_strategy = st.integers(min_value=1, max_value=10**6).map(str)

# Strategy for generating FIFO queues of parent identifiers
child_id_queue_strategy = st.lists(identifier_strategy, max_size=30, unique=True)

# Strategy for generating scopes that satisfy a repository-level source
scope_strategy = st.builds(
    SyncScope,
    org_name=st.text(alphabet="abcdefghijklmnopqrstuvwxyz-", min_size=1, max_size=20),
    unit_name=st.text(alphabet="abcdefghijklmnopqrstuvwxyz-", min_size=1, max_size=20),
)

# Strategy for generating record type progress entries
type_progress_strategy = st.builds(
    TypeProgress,
    complete=st.booleans(),
    page=st.integers(min_value=1, max_value=50),
)


@composite
def extraction_state_strategy(draw, record_types: List[str]) -> ExtractionState:
    """Generate a checkpoint for ``record_types`` with arbitrary progress and queues."""
    per_type = {name: draw(type_progress_strategy) for name in record_types}
    pending = {
        name: draw(child_id_queue_strategy)
        for name in draw(st.lists(st.sampled_from(record_types), unique=True))
    }
    return ExtractionState(
        per_type=per_type,
        pending_child_ids=pending,
        scope=draw(scope_strategy),
        mode=draw(st.sampled_from(list(SyncMode))),
        last_sync_started=draw(
            st.none() | st.datetimes(timezones=st.just(timezone.utc))
        ),
    )
