"""
First stage of the pipeline: drops fragments outside the chat area and sorts
the rest into date headers, time stamps and message lines.
"""

import logging
import re
from typing import Iterable, List, Optional, Set, Tuple

from src.core.models import ClassifiedFragment, FragmentCategory, TextFragment

logger = logging.getLogger(__name__)

# Vertical band holding the conversation (bottom-up Y). Everything at or below
# CONTENT_MIN_Y is the input bar, at or above CONTENT_MAX_Y the status/title bar.
CONTENT_MIN_Y = 0.18
CONTENT_MAX_Y = 0.92

# UI chrome that OCR picks up inside the content band
NOISE_STRINGS = frozenset({"+", "export"})

# "Fri, 28 Nov", "28 Nov 2025", "28 Nov 2025 at 9:44 PM"
DATE_HEADER_PATTERN = re.compile(
    r"^([A-Za-z]{3},\s*)?\d{1,2}\s+[A-Za-z]{3}(\s+\d{4})?"
    r"(\s+at\s+\d{1,2}:\d{2}\s*(AM|PM)?)?$",
    re.IGNORECASE,
)

# "4:21 PM", "4:21PM", "21:05", "9:45PM J/" (stray glyphs next to the time)
TIME_ONLY_PATTERN = re.compile(
    r"^\s*(\d{1,2}:\d{2})\s*(AM|PM)?(\s*[A-Z/]{1,3})?\s*$",
    re.IGNORECASE,
)

_WHITESPACE_RUN = re.compile(r"\s+")


def is_in_content_area(fragment: TextFragment) -> bool:
    """Exclusive at both ends: mid_y == 0.18 or 0.92 is chrome."""
    mid_y = fragment.bounding_box.mid_y
    return CONTENT_MIN_Y < mid_y < CONTENT_MAX_Y


def filter_fragments(
    fragments: Iterable[TextFragment],
) -> List[Tuple[int, TextFragment]]:
    """
    Keeps fragments inside the content area, tagged with their origin index.
    Exact repeats (same page, text and box) are collapsed to the first one.
    """
    kept = []
    seen: Set[TextFragment] = set()
    for index, fragment in enumerate(fragments):
        if not is_in_content_area(fragment):
            continue
        if fragment in seen:
            continue
        seen.add(fragment)
        kept.append((index, fragment))
    return kept


def basic_normalize(text: str) -> Optional[str]:
    """Trims and collapses whitespace. Returns None for empty text or UI noise."""
    normalized = _WHITESPACE_RUN.sub(" ", text.strip())
    if not normalized:
        return None
    if normalized.lower() in NOISE_STRINGS:
        return None
    return normalized


def is_date_header(text: str) -> bool:
    return DATE_HEADER_PATTERN.match(text) is not None


def is_time_only(text: str) -> bool:
    return TIME_ONLY_PATTERN.match(text) is not None


def normalize_time_text(text: str) -> str:
    """'9:45PM J/' -> '9:45 PM', '21:05 JJ' -> '21:05'."""
    match = TIME_ONLY_PATTERN.match(text)
    if not match:
        return text
    clock, meridiem = match.group(1), match.group(2)
    if meridiem:
        return f"{clock} {meridiem.upper()}"
    return clock


class FragmentClassifier:
    """
    Categorizes OCR fragments. The date header check runs before the time
    check: 'Fri, 28 Nov at 9:44 PM' contains a time of day but is a header.
    """

    def classify_text(self, text: str) -> Optional[Tuple[FragmentCategory, str]]:
        normalized = basic_normalize(text)
        if normalized is None:
            return None

        if is_date_header(normalized):
            return FragmentCategory.DATE_HEADER, normalized
        if is_time_only(normalized):
            return FragmentCategory.TIME_ONLY, normalize_time_text(normalized)
        return FragmentCategory.MESSAGE_LINE, normalized

    def classify(self, fragments: Iterable[TextFragment]) -> List[ClassifiedFragment]:
        """
        Filters and classifies the fragments, preserving input order.
        Dropped fragments (chrome, empty, noise) never show up in the result.
        """
        fragments = list(fragments)
        candidates = filter_fragments(fragments)

        classified = []
        for global_index, fragment in candidates:
            result = self.classify_text(fragment.text)
            if result is None:
                continue
            category, normalized = result
            classified.append(
                ClassifiedFragment(
                    global_index=global_index,
                    fragment=fragment,
                    category=category,
                    normalized_text=normalized,
                )
            )

        logger.debug(
            f"Classified {len(classified)} of {len(fragments)} fragments "
            f"({len(fragments) - len(candidates)} outside the chat area)"
        )
        return classified
