# datefunnel/scheduling/__init__.py
"""
Group scheduling consensus engine.

Pure functions over a trip-scoped snapshot: no I/O, no stored state.
The caller loads the trip, calls in here, and persists the result.
"""
from datefunnel.scheduling.consensus import score_consensus_windows  # noqa: F401
from datefunnel.scheduling.errors import (  # noqa: F401
    SchedulingConflict,
    SchedulingError,
    SchedulingValidationError,
)
from datefunnel.scheduling.funnel import build_funnel_view, derive_funnel_state  # noqa: F401
from datefunnel.scheduling.normalizer import normalize_all, normalize_availability  # noqa: F401
from datefunnel.scheduling.readiness import evaluate_proposal_readiness  # noqa: F401
from datefunnel.scheduling.types import SchedulingFunnelState, TripSnapshot  # noqa: F401
