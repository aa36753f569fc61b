"""
Command-line interface for vocabulary extraction.

Usage:
    # Print extracted words, one per line
    vocab-ocr page.jpg

    # Full JSON result with diagnostics
    vocab-ocr page.jpg --json --debug

    # Custom configuration
    vocab-ocr page.jpg --config my_config.yaml --log-level DEBUG
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .logging_config import setup_logging
from .processor import VocabularyOCRProcessor
from .types import ProgressEvent

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="vocab-ocr",
        description="Extract English vocabulary words from a photographed word list",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("image", type=Path, help="Path to the image file")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a YAML configuration file (default: bundled config)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Collect diagnostics (all strategy results, processing steps)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full result as JSON",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    return parser


def _log_progress(event: ProgressEvent) -> None:
    detail = f" ({event.detail})" if event.detail else ""
    logger.info(f"[{event.percent:5.1f}%] {event.status.value}{detail}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point.

    Args:
        argv: Argument list (defaults to ``sys.argv[1:]``)

    Returns:
        Process exit code: 0 on success, 1 on extraction failure
    """
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    processor = VocabularyOCRProcessor(config_path=args.config)
    result = processor.process(args.image, debug=args.debug, on_progress=_log_progress)

    if args.json:
        include_bboxes = processor.config.ocr.output.include_bounding_boxes
        print(json.dumps(result.to_dict(include_bboxes=include_bboxes), indent=2, ensure_ascii=False))
    elif result.success:
        for candidate in result.words:
            print(candidate.word)
    else:
        print(f"Extraction failed [{result.error_code}]: {result.error}", file=sys.stderr)

    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
