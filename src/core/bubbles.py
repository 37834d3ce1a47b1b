import logging
from typing import List, Optional, Sequence

from src.core.config import ReconstructionConfig
from src.core.models import Bubble, ClassifiedFragment

logger = logging.getLogger(__name__)


class BubbleBuilder:
    """
    Groups message-line fragments into chat bubbles.

    Single greedy pass, top of screen first: each line either joins the most
    recent bubble on the same page and side, or opens a new one. Bubbles are
    never re-merged once another bubble on that side has been opened after them.
    """

    def __init__(self, config: Optional[ReconstructionConfig] = None):
        self.config = config or ReconstructionConfig()

    def is_outgoing(self, line: ClassifiedFragment) -> bool:
        return line.mid_x > self.config.side_split_x

    def can_merge(self, candidate: Bubble, line: ClassifiedFragment) -> bool:
        # Same page & side already checked by the caller
        dy = abs(candidate.max_y - line.mid_y)
        dx = abs(candidate.mid_x - line.mid_x)
        return dy < self.config.merge_max_dy and dx < self.config.merge_max_dx

    def build(self, lines: Sequence[ClassifiedFragment]) -> List[Bubble]:
        # Page ascending, then higher on screen first (bottom-up Y: larger is higher)
        ordered = sorted(lines, key=lambda line: (line.page_index, -line.mid_y))

        bubbles: List[Bubble] = []
        for line in ordered:
            is_outgoing = self.is_outgoing(line)

            candidate = self._last_bubble_for(bubbles, line.page_index, is_outgoing)
            if candidate is not None and self.can_merge(candidate, line):
                candidate.add_line(line)
                continue

            bubbles.append(Bubble.start(line, is_outgoing))

        logger.debug(f"Grouped {len(ordered)} message lines into {len(bubbles)} bubbles")
        return bubbles

    @staticmethod
    def _last_bubble_for(
        bubbles: List[Bubble], page_index: int, is_outgoing: bool
    ) -> Optional[Bubble]:
        for bubble in reversed(bubbles):
            if bubble.page_index == page_index and bubble.is_outgoing == is_outgoing:
                return bubble
        return None
