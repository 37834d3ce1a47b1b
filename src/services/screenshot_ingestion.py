import os
import logging
import tempfile
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from src.core.config import ReconstructionConfig, read_env_number
from src.core.models import TextFragment, TranscriptEntry
from src.core.reconstruction import TranscriptReconstructor
from src.screenshot_processing.ocr_service import ScreenshotOCRService

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


class ScreenshotIngestionService:
    """
    Orchestrator service that manages the full screenshot pipeline:
    1. Runs OCR on every screenshot (in parallel).
    2. Concatenates the fragments in page order.
    3. Reconstructs the ordered chat transcript.
    """

    def __init__(
        self,
        config: Optional[ReconstructionConfig] = None,
        max_workers: Optional[int] = None,
    ):
        self.ocr_service = ScreenshotOCRService()
        self.reconstructor = TranscriptReconstructor(
            config or ReconstructionConfig.from_env()
        )
        # RapidOCR releases the GIL inside ONNX runtime, so threads scale with cores
        default_workers = os.cpu_count() or 4
        self.max_workers = max_workers or read_env_number(
            "OCR_MAX_WORKERS", default_workers, cast=int
        )
        if self.max_workers < 1:
            logger.warning(
                f"OCR_MAX_WORKERS must be positive, using {default_workers} workers"
            )
            self.max_workers = default_workers

    def extract_all_fragments(self, image_paths: Sequence[str]) -> List[TextFragment]:
        """
        OCR for every screenshot; page index = position in image_paths.
        Results are gathered in page order whatever order the threads finish in.
        """
        if not image_paths:
            return []

        logger.info(
            f"👁️ Analyzing {len(image_paths)} screenshots with OCR "
            f"({self.max_workers} workers)..."
        )

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [
                executor.submit(self.ocr_service.extract_fragments, path, page_index)
                for page_index, path in enumerate(image_paths)
            ]
            fragments: List[TextFragment] = []
            for future in futures:
                fragments.extend(future.result())

        return fragments

    def process_screenshots(self, image_paths: Sequence[str]) -> List[TranscriptEntry]:
        """
        Runs the complete pipeline and returns the transcript.

        Args:
            image_paths (Sequence[str]): Screenshots in capture order.

        Returns:
            List[TranscriptEntry]: Ordered, deduplicated transcript.
        """
        fragments = self.extract_all_fragments(image_paths)
        if not fragments:
            logger.warning("No text found in the screenshots.")
            return []

        transcript = self.reconstructor.build_transcript(fragments)
        logger.info(
            f"✅ Screenshot processing complete. {len(transcript)} transcript entries."
        )
        return transcript

    def process_uploads(self, uploads: Sequence) -> List[TranscriptEntry]:
        """
        Same as process_screenshots for in-memory uploads (objects with
        `name` and `getbuffer()`, e.g. Streamlit's UploadedFile).

        Uploads are written to a temporary directory that only lives for the
        duration of the OCR run.
        """
        with tempfile.TemporaryDirectory(prefix="chat_export_") as batch_dir:
            paths = []
            for i, upload in enumerate(uploads):
                filename = os.path.basename(upload.name) or "screenshot"
                path = os.path.join(batch_dir, f"{i:03d}_{filename}")
                with open(path, "wb") as f:
                    f.write(upload.getbuffer())
                paths.append(path)

            return self.process_screenshots(paths)
