import logging
from typing import Dict, List, Sequence, Set

from src.core.models import Bubble, ClassifiedFragment, EntryKind, TranscriptEntry

logger = logging.getLogger(__name__)


def header_order_key(fragment: ClassifiedFragment) -> float:
    return fragment.page_index + (1.0 - fragment.mid_y)


class TranscriptAssembler:
    """
    Merges date headers and bubbles into one ordered entry list.

    Deduplication is content based: overlapping screenshots reproduce the same
    header or bubble, so the first occurrence (lowest page) is kept.
    """

    def assemble(
        self,
        date_headers: Sequence[ClassifiedFragment],
        bubbles: Sequence[Bubble],
        time_map: Dict[int, str],
    ) -> List[TranscriptEntry]:
        seen: Set[str] = set()
        entries: List[TranscriptEntry] = []

        for header in date_headers:
            text = header.normalized_text or header.fragment.text
            key = f"H|{text}"
            if key in seen:
                continue
            seen.add(key)

            entries.append(
                TranscriptEntry(
                    kind=EntryKind.DATE_HEADER,
                    text=text,
                    time_text=None,
                    is_outgoing=None,
                    page_index=header.page_index,
                    order_key=header_order_key(header),
                )
            )

        duplicates = 0
        for index, bubble in enumerate(bubbles):
            text = bubble.text
            if not text:
                continue

            time_text = time_map.get(index)
            side = "O" if bubble.is_outgoing else "I"
            key = f"M|{side}|{text}|{time_text or ''}"
            if key in seen:
                duplicates += 1
                continue
            seen.add(key)

            entries.append(
                TranscriptEntry(
                    kind=EntryKind.MESSAGE,
                    text=text,
                    time_text=time_text,
                    is_outgoing=bubble.is_outgoing,
                    page_index=bubble.page_index,
                    order_key=bubble.order_key,
                )
            )

        if duplicates:
            logger.debug(f"Dropped {duplicates} repeated bubbles")

        # sorted() is stable: headers stay ahead of bubbles with the same key
        return sorted(entries, key=lambda entry: entry.order_key)
