# src/core/enums/recompute_state.py

from enum import Enum

class RecomputeState(str, Enum):
    """Lifecycle of a single (account, instrument) recompute."""
    IDLE = "IDLE"
    RESET = "RESET"
    REPLAY = "REPLAY"
    COMMIT = "COMMIT"
    ABORT = "ABORT"
