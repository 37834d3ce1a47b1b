import logging
import os
from typing import List, Optional

import cv2
import numpy as np
from dotenv import load_dotenv
from rapidocr import RapidOCR

from src.core.config import read_env_number
from src.core.models import BoundingBox, TextFragment

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


def _clamp(value: float) -> float:
    return min(max(value, 0.0), 1.0)


def normalize_box(box, width: int, height: int) -> BoundingBox:
    """
    Converts a RapidOCR box (4 corner points, pixels, top-left origin) into a
    normalized BoundingBox with a bottom-up Y axis (1.0 = top of the screen).
    """
    points = np.asarray(box, dtype=float).reshape(-1, 2)
    xs, ys = points[:, 0], points[:, 1]

    return BoundingBox(
        min_x=_clamp(float(xs.min()) / width),
        min_y=_clamp(1.0 - float(ys.max()) / height),
        max_x=_clamp(float(xs.max()) / width),
        max_y=_clamp(1.0 - float(ys.min()) / height),
    )


class ScreenshotOCRService:
    """
    Service responsible for turning a chat screenshot into positioned text
    fragments using RapidOCR (ONNX). CPU only.
    """

    def __init__(self, min_confidence: Optional[float] = None) -> None:
        """
        Initializes the OCR engine once; it is reused for every screenshot.
        """
        if min_confidence is None:
            min_confidence = read_env_number("OCR_MIN_CONFIDENCE", 0.5)
        self.min_confidence = min_confidence

        try:
            self.engine = RapidOCR()
            logger.info("✅ OCR Engine initialized successfully (RapidOCR/ONNX)")
        except Exception as e:
            logger.error(f"❌ Failed to initialize OCR Engine: {e}")
            self.engine = None

    def extract_fragments(self, image_path: str, page_index: int) -> List[TextFragment]:
        """
        Runs OCR on one screenshot.

        Args:
            image_path (str): Path to the screenshot.
            page_index (int): Position of the screenshot in the capture sequence.

        Returns:
            List[TextFragment]: Fragments with normalized boxes. Empty on failure.
        """
        # 1. Guard Clauses
        if not self.engine:
            logger.error("OCR Engine is not running.")
            return []

        if not os.path.exists(image_path):
            logger.warning(f"Image not found: {image_path}")
            return []

        try:
            image = cv2.imread(image_path)
            if image is None:
                logger.warning(f"Could not decode image: {image_path}")
                return []
            height, width = image.shape[:2]

            # 2. Inference
            prediction = self.engine(image)

            # 3. Data Extraction (RapidOCROutput: boxes/txts/scores attributes)
            raw_boxes = getattr(prediction, "boxes", None)
            raw_texts = getattr(prediction, "txts", None)
            raw_scores = getattr(prediction, "scores", None)

            if raw_boxes is None or raw_texts is None or raw_scores is None:
                return []

            fragments = []
            for box, text, score in zip(raw_boxes, raw_texts, raw_scores):
                if float(score) < self.min_confidence:
                    continue
                if not str(text).strip():
                    continue

                fragments.append(
                    TextFragment(
                        text=str(text),
                        bounding_box=normalize_box(box, width, height),
                        page_index=page_index,
                    )
                )

            logger.info(
                f"📄 Page {page_index}: {len(fragments)} fragments from {image_path}"
            )
            return fragments

        except Exception as e:
            logger.error(f"Error processing image {image_path}: {e}")
            logger.exception("Traceback details:")
            return []


# --- MAIN EXECUTION BLOCK (FOR TESTING PURPOSES) ---
if __name__ == "__main__":
    # Test configuration: Ensure this file exists before running
    TEST_IMAGE = "data/screenshots/chat_001.png"

    print("🚀 Starting OCR Service...")
    ocr = ScreenshotOCRService()

    print(f"📄 Analyzing screenshot: {TEST_IMAGE}")
    if os.path.exists(TEST_IMAGE):
        for fragment in ocr.extract_fragments(TEST_IMAGE, page_index=0):
            box = fragment.bounding_box
            print(f"[x={box.mid_x:.2f} y={box.mid_y:.2f}] {fragment.text}")
    else:
        print(f"❌ ERROR: Image {TEST_IMAGE} does not exist. Please check the path.")
