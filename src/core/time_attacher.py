import logging
from typing import Dict, Optional, Sequence

from src.core.config import ReconstructionConfig
from src.core.models import Bubble, ClassifiedFragment

logger = logging.getLogger(__name__)


class TimeAttacher:
    """
    Assigns time stamps to the closest bubble on the same page.

    Score is the Manhattan distance between the time stamp center and the
    bubble (vertical center, running mean X). On equal scores the earlier
    bubble keeps the assignment; when two time stamps pick the same bubble the
    one processed last wins.
    """

    def __init__(self, config: Optional[ReconstructionConfig] = None):
        self.config = config or ReconstructionConfig()

    def attach(
        self, bubbles: Sequence[Bubble], times: Sequence[ClassifiedFragment]
    ) -> Dict[int, str]:
        if not bubbles or not times:
            return {}

        time_map: Dict[int, str] = {}

        for time_fragment in times:
            time_text = time_fragment.normalized_text or time_fragment.fragment.text
            if not time_text:
                continue

            best_index = None
            best_score = float("inf")

            for index, bubble in enumerate(bubbles):
                if bubble.page_index != time_fragment.page_index:
                    continue

                dy = abs(bubble.center_y - time_fragment.mid_y)
                dx = abs(bubble.mid_x - time_fragment.mid_x)
                score = dy + dx

                if score < best_score:
                    best_score = score
                    best_index = index

            if best_index is None or best_score >= self.config.time_max_score:
                logger.debug(
                    f"No bubble close enough for time '{time_text}' "
                    f"on page {time_fragment.page_index} (best score {best_score:.3f})"
                )
                continue

            if best_index in time_map:
                logger.debug(
                    f"Time '{time_text}' replaces '{time_map[best_index]}' "
                    f"on bubble {best_index}"
                )
            time_map[best_index] = time_text

        return time_map
