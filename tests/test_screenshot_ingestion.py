import os
import unittest
from unittest.mock import patch
from src.core.config import ReconstructionConfig
from src.core.models import BoundingBox, TextFragment
from src.services.screenshot_ingestion import ScreenshotIngestionService


def make_fragment(text, mid_x, mid_y, page_index):
    box = BoundingBox(mid_x - 0.1, mid_y - 0.015625, mid_x + 0.1, mid_y + 0.015625)
    return TextFragment(text=text, bounding_box=box, page_index=page_index)


PAGES = {
    "first.png": lambda page: [
        make_fragment("Fri, 28 Nov", 0.5, 0.85, page),
        make_fragment("Hi!", 0.2, 0.75, page),
    ],
    "second.png": lambda page: [
        make_fragment("Hi!", 0.2, 0.80, page),
        make_fragment("Hello there", 0.8, 0.5, page),
        make_fragment("4:21 PM", 0.85, 0.47, page),
    ],
}


def fake_extract(path, page_index):
    return PAGES[path](page_index)


class FakeUpload:
    """Stand-in for Streamlit's UploadedFile."""

    def __init__(self, name, data=b"png"):
        self.name = name
        self.data = data

    def getbuffer(self):
        return memoryview(self.data)


class TestScreenshotIngestionService(unittest.TestCase):
    def setUp(self):
        # Patch the OCR engine wrapper where it is IMPORTED in the service
        self.patcher = patch("src.services.screenshot_ingestion.ScreenshotOCRService")
        self.MockOCRService = self.patcher.start()
        self.MockOCRService.return_value.extract_fragments.side_effect = fake_extract

        self.service = ScreenshotIngestionService(config=ReconstructionConfig(), max_workers=2)

    def tearDown(self):
        self.patcher.stop()

    def test_page_index_follows_path_order(self):
        fragments = self.service.extract_all_fragments(["second.png", "first.png"])

        self.assertEqual([f.page_index for f in fragments], [0, 0, 0, 1, 1])
        self.assertEqual(fragments[0].text, "Hi!")

    def test_process_screenshots(self):
        transcript = self.service.process_screenshots(["first.png", "second.png"])

        self.assertEqual(
            [(e.text, e.page_index, e.time_text) for e in transcript],
            [
                ("Fri, 28 Nov", 0, None),
                ("Hi!", 0, None),
                ("Hello there", 1, "4:21 PM"),
            ],
        )

    def test_no_screenshots(self):
        self.assertEqual(self.service.process_screenshots([]), [])
        self.MockOCRService.return_value.extract_fragments.assert_not_called()

    def test_no_text_found(self):
        self.MockOCRService.return_value.extract_fragments.side_effect = None
        self.MockOCRService.return_value.extract_fragments.return_value = []

        self.assertEqual(self.service.process_screenshots(["first.png"]), [])

    def test_process_uploads_cleans_up(self):
        seen = []

        def extract_from_disk(path, page_index):
            self.assertTrue(os.path.exists(path))
            seen.append(path)
            with open(path, "rb") as f:
                self.assertEqual(f.read(), b"png")
            return fake_extract(os.path.basename(path).split("_", 1)[1], page_index)

        self.MockOCRService.return_value.extract_fragments.side_effect = extract_from_disk

        transcript = self.service.process_uploads(
            [FakeUpload("first.png"), FakeUpload("nested/second.png")]
        )

        self.assertEqual([e.text for e in transcript], ["Fri, 28 Nov", "Hi!", "Hello there"])
        self.assertEqual(
            sorted(os.path.basename(p) for p in seen), ["000_first.png", "001_second.png"]
        )
        # Nothing is left behind once the transcript is built
        for path in seen:
            self.assertFalse(os.path.exists(os.path.dirname(path)))

    def test_process_uploads_cleans_up_on_error(self):
        seen = []

        def failing_extract(path, page_index):
            seen.append(path)
            raise RuntimeError("onnx failure")

        self.MockOCRService.return_value.extract_fragments.side_effect = failing_extract

        with self.assertRaises(RuntimeError):
            self.service.process_uploads([FakeUpload("first.png")])

        self.assertFalse(os.path.exists(os.path.dirname(seen[0])))

    @patch.dict(os.environ, {"OCR_MAX_WORKERS": "3"})
    def test_max_workers_from_env(self):
        service = ScreenshotIngestionService(config=ReconstructionConfig())

        self.assertEqual(service.max_workers, 3)

    @patch.dict(os.environ, {"OCR_MAX_WORKERS": "many"})
    def test_invalid_max_workers_falls_back(self):
        with self.assertLogs("src.core.config", level="WARNING"):
            service = ScreenshotIngestionService(config=ReconstructionConfig())

        self.assertEqual(service.max_workers, os.cpu_count() or 4)

    @patch.dict(os.environ, {"OCR_MAX_WORKERS": "0"})
    def test_non_positive_max_workers_falls_back(self):
        with self.assertLogs("src.services.screenshot_ingestion", level="WARNING"):
            service = ScreenshotIngestionService(config=ReconstructionConfig())

        self.assertEqual(service.max_workers, os.cpu_count() or 4)


if __name__ == "__main__":
    unittest.main()
