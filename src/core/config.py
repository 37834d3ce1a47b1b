import logging
import os
from dataclasses import dataclass, fields

from dotenv import load_dotenv

# Load environment variables (.env overrides for threshold tuning)
load_dotenv()

logger = logging.getLogger(__name__)


def read_env_number(name: str, default, cast=float):
    """
    Reads a numeric environment variable. Missing, blank or unparsable values
    fall back to the default (invalid ones are logged).
    """
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid value for {name}: {raw!r} (using default {default})")
        return default


@dataclass(frozen=True)
class ReconstructionConfig:
    """
    Empirical thresholds of the reconstruction heuristics.

    Defaults are tuned for one messaging app's screenshot layout. All values
    live in normalized screen units, except the order-key gaps which are in
    order-key units (one page == 1.0).
    """

    # Bubble clustering: max vertical gap / horizontal drift to join a bubble
    merge_max_dy: float = 0.08
    merge_max_dx: float = 0.25
    # Time attachment: max |dy| + |dx| between a time stamp and its bubble
    time_max_score: float = 0.6
    # Post-processing: time propagation window and residual split merge window
    propagate_max_gap: float = 0.5
    residual_merge_max_gap: float = 0.12
    # Lines whose horizontal center lies right of this are outgoing
    side_split_x: float = 0.5

    @classmethod
    def from_env(cls) -> "ReconstructionConfig":
        """
        Builds a config from CHAT_<FIELD_NAME> environment variables,
        e.g. CHAT_MERGE_MAX_DY=0.1. Missing or invalid values keep the default.
        """
        return cls(
            **{
                f.name: read_env_number(f"CHAT_{f.name.upper()}", f.default)
                for f in fields(cls)
            }
        )
