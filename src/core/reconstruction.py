"""
Rebuilds an ordered chat transcript from unordered per-screenshot OCR fragments.

Pipeline: filter -> classify -> group bubbles -> attach times -> assemble
(dedup + sort) -> post-process (time propagation + residual merges).
The whole run is synchronous and deterministic; each call works on its own
copy of the input and returns fresh entries.
"""

import logging
from typing import Iterable, List, Optional

from src.core.assembler import TranscriptAssembler
from src.core.bubbles import BubbleBuilder
from src.core.classifier import FragmentClassifier
from src.core.config import ReconstructionConfig
from src.core.models import FragmentCategory, TextFragment, TranscriptEntry
from src.core.post_processor import PostProcessor
from src.core.time_attacher import TimeAttacher

logger = logging.getLogger(__name__)


class TranscriptReconstructor:
    def __init__(self, config: Optional[ReconstructionConfig] = None) -> None:
        self.config = config or ReconstructionConfig()
        self.classifier = FragmentClassifier()
        self.bubble_builder = BubbleBuilder(self.config)
        self.time_attacher = TimeAttacher(self.config)
        self.assembler = TranscriptAssembler()
        self.post_processor = PostProcessor(self.config)

    def build_transcript(self, fragments: Iterable[TextFragment]) -> List[TranscriptEntry]:
        """
        Args:
            fragments: Every fragment of every screenshot, in any order.

        Returns:
            List[TranscriptEntry]: Date headers and messages, page-major and
                top-to-bottom within a page. Empty for empty input.
        """
        classified = self.classifier.classify(fragments)

        date_headers = [c for c in classified if c.category is FragmentCategory.DATE_HEADER]
        times = [c for c in classified if c.category is FragmentCategory.TIME_ONLY]
        lines = [c for c in classified if c.category is FragmentCategory.MESSAGE_LINE]

        bubbles = self.bubble_builder.build(lines)
        time_map = self.time_attacher.attach(bubbles, times)

        assembled = self.assembler.assemble(date_headers, bubbles, time_map)
        transcript = self.post_processor.process(assembled)

        logger.info(
            f"🧩 Reconstructed {len(transcript)} entries "
            f"({len(date_headers)} headers, {len(bubbles)} bubbles, "
            f"{len(time_map)}/{len(times)} times attached)"
        )
        return transcript


def build_transcript(
    fragments: Iterable[TextFragment], config: Optional[ReconstructionConfig] = None
) -> List[TranscriptEntry]:
    """Convenience wrapper using a fresh reconstructor."""
    return TranscriptReconstructor(config).build_transcript(fragments)
