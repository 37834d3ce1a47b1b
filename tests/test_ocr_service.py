import os
import unittest
import numpy as np
from unittest.mock import MagicMock, patch
from src.screenshot_processing.ocr_service import ScreenshotOCRService, normalize_box


class TestNormalizeBox(unittest.TestCase):
    def test_pixels_to_bottom_up_unit_box(self):
        box = [[50, 100], [250, 100], [250, 140], [50, 140]]

        result = normalize_box(box, width=500, height=1000)

        self.assertAlmostEqual(result.min_x, 0.1)
        self.assertAlmostEqual(result.max_x, 0.5)
        # Top of the image (small pixel Y) maps to large normalized Y
        self.assertAlmostEqual(result.min_y, 0.86)
        self.assertAlmostEqual(result.max_y, 0.9)

    def test_values_are_clamped(self):
        box = [[-10, -5], [520, -5], [520, 1010], [-10, 1010]]

        result = normalize_box(box, width=500, height=1000)

        self.assertEqual((result.min_x, result.min_y, result.max_x, result.max_y), (0.0, 0.0, 1.0, 1.0))


class TestScreenshotOCRService(unittest.TestCase):
    def setUp(self):
        # Patch RapidOCR initialization
        self.patcher = patch("src.screenshot_processing.ocr_service.RapidOCR")
        self.MockRapidOCR = self.patcher.start()

        self.ocr_service = ScreenshotOCRService(min_confidence=0.5)

    def tearDown(self):
        self.patcher.stop()

    @patch.dict(os.environ, {"OCR_MIN_CONFIDENCE": "0.8"})
    def test_min_confidence_from_env(self):
        self.assertEqual(ScreenshotOCRService().min_confidence, 0.8)

    @patch.dict(os.environ, {"OCR_MIN_CONFIDENCE": "high"})
    def test_invalid_min_confidence_falls_back(self):
        with self.assertLogs("src.core.config", level="WARNING") as logs:
            service = ScreenshotOCRService()

        self.assertEqual(service.min_confidence, 0.5)
        self.assertIn("OCR_MIN_CONFIDENCE", logs.output[0])

    @patch("src.screenshot_processing.ocr_service.cv2.imread")
    @patch("src.screenshot_processing.ocr_service.os.path.exists")
    def test_extract_fragments_success(self, mock_exists, mock_imread):
        mock_exists.return_value = True
        mock_imread.return_value = np.zeros((1000, 500, 3), dtype=np.uint8)
        mock_instance = self.MockRapidOCR.return_value

        # Mock prediction result structure (Object with boxes, txts and scores attributes)
        MockPrediction = MagicMock()
        MockPrediction.boxes = np.array(
            [
                [[50, 100], [250, 100], [250, 140], [50, 140]],
                [[300, 500], [450, 500], [450, 540], [300, 540]],
                [[300, 600], [450, 600], [450, 640], [300, 640]],
            ],
            dtype=float,
        )
        MockPrediction.txts = ("Fri, 28 Nov", "See you", "~~")
        MockPrediction.scores = (0.95, 0.88, 0.2)

        mock_instance.return_value = MockPrediction

        fragments = self.ocr_service.extract_fragments("shot.png", page_index=3)

        self.assertEqual([f.text for f in fragments], ["Fri, 28 Nov", "See you"])
        self.assertTrue(all(f.page_index == 3 for f in fragments))
        self.assertAlmostEqual(fragments[1].bounding_box.mid_x, 0.75)
        self.assertAlmostEqual(fragments[1].bounding_box.mid_y, 0.48)

    def test_extract_fragments_missing_file(self):
        fragments = self.ocr_service.extract_fragments("does/not/exist.png", page_index=0)
        self.assertEqual(fragments, [])

    @patch("src.screenshot_processing.ocr_service.cv2.imread")
    @patch("src.screenshot_processing.ocr_service.os.path.exists")
    def test_extract_fragments_empty(self, mock_exists, mock_imread):
        mock_exists.return_value = True
        mock_imread.return_value = np.zeros((100, 100, 3), dtype=np.uint8)
        self.MockRapidOCR.return_value.return_value = None

        fragments = self.ocr_service.extract_fragments("dummy.png", page_index=0)

        self.assertEqual(fragments, [])

    @patch("src.screenshot_processing.ocr_service.cv2.imread")
    @patch("src.screenshot_processing.ocr_service.os.path.exists")
    def test_engine_failure_is_logged_not_raised(self, mock_exists, mock_imread):
        mock_exists.return_value = True
        mock_imread.return_value = np.zeros((100, 100, 3), dtype=np.uint8)
        self.MockRapidOCR.return_value.side_effect = RuntimeError("onnx crashed")

        with self.assertLogs("src.screenshot_processing.ocr_service", level="ERROR"):
            fragments = self.ocr_service.extract_fragments("dummy.png", page_index=0)

        self.assertEqual(fragments, [])

    def test_engine_not_initialized(self):
        self.MockRapidOCR.side_effect = RuntimeError("no model")
        service = ScreenshotOCRService()

        self.assertIsNone(service.engine)
        self.assertEqual(service.extract_fragments("dummy.png", page_index=0), [])


if __name__ == "__main__":
    unittest.main()
