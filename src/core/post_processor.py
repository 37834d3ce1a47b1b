import logging
from dataclasses import replace
from typing import Dict, List, Optional, Sequence, Tuple

from src.core.config import ReconstructionConfig
from src.core.models import TranscriptEntry

logger = logging.getLogger(__name__)

# (page_index, is_outgoing)
SideKey = Tuple[int, bool]


class PostProcessor:
    """
    Final pass over the sorted entries.

    1. Time propagation: a message without time inherits the time of the last
       timed message on the same page and side, if it sits close enough below.
    2. Residual split merge: a message landing right under the previous output
       message of the same page and side is folded into it.

    Date headers pass through untouched and do not reset any side state.
    """

    def __init__(self, config: Optional[ReconstructionConfig] = None):
        self.config = config or ReconstructionConfig()

    def process(self, entries: Sequence[TranscriptEntry]) -> List[TranscriptEntry]:
        output: List[TranscriptEntry] = []
        last_time_for_side: Dict[SideKey, Tuple[str, float]] = {}

        for original in entries:
            entry = replace(original)
            if not entry.is_message:
                output.append(entry)
                continue

            side: SideKey = (entry.page_index, bool(entry.is_outgoing))

            if entry.time_text:
                last_time_for_side[side] = (entry.time_text, entry.order_key)
            elif side in last_time_for_side:
                last_time, last_order = last_time_for_side[side]
                if entry.order_key - last_order < self.config.propagate_max_gap:
                    entry.time_text = last_time

            if output and self._should_merge(output[-1], entry):
                last = output[-1]
                logger.debug(
                    f"Merging split bubble on page {entry.page_index}: "
                    f"{entry.text[:30]!r} into {last.text[:30]!r}"
                )
                last.text = f"{last.text}\n{entry.text}"
                if not last.time_text:
                    last.time_text = entry.time_text
            else:
                output.append(entry)

        return output

    def _should_merge(self, last: TranscriptEntry, entry: TranscriptEntry) -> bool:
        return (
            last.is_message
            and last.is_outgoing == entry.is_outgoing
            and last.page_index == entry.page_index
            and abs(last.order_key - entry.order_key)
            < self.config.residual_merge_max_gap
        )
