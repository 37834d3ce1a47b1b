import os
import sys
import argparse
import logging
from typing import List, Optional

from src.services.export_service import EXPORT_FORMATS, make_csv, make_plain_text, write_export
from src.services.screenshot_ingestion import ScreenshotIngestionService

# Configure Logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

DEFAULT_PDF_OUTPUT = "ChatExport.pdf"


def main(image_paths: List[str], fmt: str = "txt", output: Optional[str] = None) -> int:
    """
    Screenshot -> transcript export pipeline.
    Screenshots must be given in capture order (oldest scroll position first).
    """
    logger.info(f"🚀 STARTING CHAT EXPORT FOR {len(image_paths)} SCREENSHOTS")

    existing = [path for path in image_paths if os.path.exists(path)]
    for path in image_paths:
        if path not in existing:
            logger.warning(f"⚠️ Screenshot not found, skipping: {path}")

    if not existing:
        logger.error("❌ None of the given screenshots exist.")
        return 1

    service = ScreenshotIngestionService()
    transcript = service.process_screenshots(existing)

    # PDF is binary: never dumped to stdout
    if fmt == "pdf" and not output:
        output = DEFAULT_PDF_OUTPUT

    if output:
        write_export(transcript, output, fmt)
    else:
        content = make_csv(transcript) if fmt == "csv" else make_plain_text(transcript)
        print(content)

    logger.info(f"✅ EXPORT FINISHED ({len(transcript)} entries)")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Rebuild a chat transcript from conversation screenshots."
    )
    parser.add_argument("images", nargs="+", help="Screenshot files in capture order")
    parser.add_argument(
        "--format", dest="fmt", choices=EXPORT_FORMATS, default="txt", help="Export format"
    )
    parser.add_argument(
        "--output", type=str, default=None, help="Output file (stdout if omitted; ChatExport.pdf for pdf)"
    )

    args = parser.parse_args()

    sys.exit(main(args.images, args.fmt, args.output))
