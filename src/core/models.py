"""
Data model shared by the transcript reconstruction pipeline.

Coordinates follow the bottom-up convention of the OCR adapter: every value is
normalized to [0, 1] relative to its screenshot and a larger Y means higher on
screen. Page index is the position of the screenshot in the capture sequence.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


@dataclass(frozen=True)
class BoundingBox:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def mid_x(self) -> float:
        return (self.min_x + self.max_x) / 2.0

    @property
    def mid_y(self) -> float:
        return (self.min_y + self.max_y) / 2.0


@dataclass(frozen=True)
class TextFragment:
    """One OCR-recognized text region, as handed over by the OCR provider."""

    text: str
    bounding_box: BoundingBox
    page_index: int


class FragmentCategory(Enum):
    DATE_HEADER = "date_header"
    TIME_ONLY = "time_only"
    MESSAGE_LINE = "message_line"


@dataclass(frozen=True)
class ClassifiedFragment:
    global_index: int
    fragment: TextFragment
    category: FragmentCategory
    normalized_text: Optional[str] = None

    @property
    def mid_x(self) -> float:
        return self.fragment.bounding_box.mid_x

    @property
    def mid_y(self) -> float:
        return self.fragment.bounding_box.mid_y

    @property
    def page_index(self) -> int:
        return self.fragment.page_index


@dataclass
class Bubble:
    """
    A logical chat message under construction.

    Mutated only while the bubble builder appends lines to it; the running
    aggregates (min_y, max_y, mid_x) always describe every line seen so far.
    """

    page_index: int
    is_outgoing: bool
    lines: List[ClassifiedFragment] = field(default_factory=list)
    min_y: float = 0.0
    max_y: float = 0.0
    mid_x: float = 0.0

    @classmethod
    def start(cls, line: ClassifiedFragment, is_outgoing: bool) -> "Bubble":
        return cls(
            page_index=line.page_index,
            is_outgoing=is_outgoing,
            lines=[line],
            min_y=line.mid_y,
            max_y=line.mid_y,
            mid_x=line.mid_x,
        )

    def add_line(self, line: ClassifiedFragment) -> None:
        self.lines.append(line)
        self.min_y = min(self.min_y, line.mid_y)
        self.max_y = max(self.max_y, line.mid_y)
        # Running mean over all lines, the new one included
        count = len(self.lines)
        self.mid_x = (self.mid_x * (count - 1) + line.mid_x) / count

    @property
    def center_y(self) -> float:
        return (self.min_y + self.max_y) / 2.0

    @property
    def order_key(self) -> float:
        return self.page_index + (1.0 - self.center_y)

    @property
    def text(self) -> str:
        return "\n".join(
            line.normalized_text for line in self.lines if line.normalized_text
        )


class EntryKind(Enum):
    DATE_HEADER = "date_header"
    MESSAGE = "message"


@dataclass
class TranscriptEntry:
    """
    Final output unit handed to export and display code.

    order_key only encodes page-major, top-to-bottom ordering; consumers
    should not read anything else into its value.
    """

    kind: EntryKind
    text: str
    time_text: Optional[str]
    is_outgoing: Optional[bool]
    page_index: int
    order_key: float

    @property
    def is_message(self) -> bool:
        return self.kind is EntryKind.MESSAGE
