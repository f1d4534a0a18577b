#!/usr/bin/env python3
"""
Live Capture Session Script
===========================

Standalone script that runs one scrolling capture session against the
screen and writes the stitched result.

This script:
    1. Starts a session over the given screen rectangle
    2. Runs for a configurable duration while you scroll the content
    3. Logs session stats every few seconds
    4. Stops, reports a summary, and saves the composite as PNG

Prerequisites:
    - A display the `mss` backend can grab (screen recording permission
      on macOS)
    - Install the package: pip install -e .

Usage:
    python scripts/capture_session.py --rect 100 100 400 800 --duration 20
    python scripts/capture_session.py --rect 0 0 800 600 --matcher template -o page.png
"""

import argparse
import asyncio
import logging
import os
import sys
import time

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from scrollstitch.capture.image_ops import encode_png
from scrollstitch.config import load_config
from scrollstitch.models import EventType, Rect
from scrollstitch.session import create_orchestrator


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


async def run_session(
    rect: Rect,
    duration: int,
    interval_ms: int,
    matcher: str,
    report_interval: int,
    output: str,
) -> dict:
    """
    Run one capture session.

    Args:
        rect: Screen rectangle to capture
        duration: Session duration in seconds
        interval_ms: Polling period
        matcher: Overlap matcher backend
        report_interval: Seconds between progress reports
        output: PNG path for the composite

    Returns:
        Final stats dict
    """
    settings = load_config()
    settings.capture.source = "mss"
    settings.capture.detection_interval_ms = interval_ms
    settings.matcher.backend = matcher

    logger.info("=" * 60)
    logger.info("Scrolling Capture Session")
    logger.info("=" * 60)
    logger.info(f"Rect: {rect!r}")
    logger.info(f"Duration: {duration} seconds")
    logger.info(f"Interval: {interval_ms} ms")
    logger.info(f"Matcher: {matcher}")
    logger.info("=" * 60)

    orchestrator = create_orchestrator(settings)
    orchestrator.events.subscribe(
        EventType.STATUS_CHANGED,
        lambda text: logger.info(f"[status] {text}"),
    )

    if not orchestrator.start(rect):
        logger.error("Capture could not be started")
        return {"started": False}

    start_time = time.time()
    last_report_time = start_time

    try:
        while time.time() - start_time < duration:
            if time.time() - last_report_time >= report_interval:
                stats = orchestrator.stats()
                logger.info("-" * 40)
                logger.info(f"Progress Report (elapsed: {time.time() - start_time:.0f}s)")
                logger.info(f"  Fragments: {stats.capture_count}")
                logger.info(f"  Skipped duplicates: {stats.skipped_duplicates}")
                logger.info(f"  Ticks: {stats.ticks}")
                logger.info(f"  Capture failures: {stats.capture_failures}")
                logger.info(f"  Canvas: {stats.canvas_width}x{stats.canvas_height}")
                last_report_time = time.time()

            await asyncio.sleep(0.25)

    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("Session interrupted by user")
    finally:
        composite = orchestrator.stop()

    stats = orchestrator.stats()

    logger.info("=" * 60)
    logger.info("FINAL SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Total runtime: {time.time() - start_time:.1f} seconds")
    logger.info(f"Fragments: {stats.capture_count}")
    logger.info(f"Skipped duplicates: {stats.skipped_duplicates}")
    logger.info(f"Ticks: {stats.ticks}")
    logger.info(f"Canvas: {stats.canvas_width}x{stats.canvas_height}")
    logger.info("=" * 60)

    if composite is not None:
        with open(output, "wb") as f:
            f.write(encode_png(composite))
        logger.info(f"Composite saved to {output}")
    else:
        logger.error("No composite produced")

    return {
        "started": True,
        "fragments": stats.capture_count,
        "skipped_duplicates": stats.skipped_duplicates,
        "canvas_width": stats.canvas_width,
        "canvas_height": stats.canvas_height,
        "output": output if composite is not None else None,
    }


def main():
    parser = argparse.ArgumentParser(
        description="Run a live scrolling capture session"
    )
    parser.add_argument(
        "--rect",
        type=int,
        nargs=4,
        metavar=("X", "Y", "WIDTH", "HEIGHT"),
        required=True,
        help="Screen rectangle to capture",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=20,
        help="Session duration in seconds (default: 20)",
    )
    parser.add_argument(
        "--interval",
        type=int,
        default=200,
        help="Detection interval in milliseconds (default: 200)",
    )
    parser.add_argument(
        "--matcher",
        choices=["sampled", "template"],
        default="sampled",
        help="Overlap matcher backend (default: sampled)",
    )
    parser.add_argument(
        "--report-interval",
        type=int,
        default=5,
        help="Seconds between progress reports (default: 5)",
    )
    parser.add_argument(
        "-o", "--output",
        type=str,
        default="scrollstitch.png",
        help="Output PNG path (default: scrollstitch.png)",
    )

    args = parser.parse_args()

    result = asyncio.run(run_session(
        rect=Rect(*args.rect),
        duration=args.duration,
        interval_ms=args.interval,
        matcher=args.matcher,
        report_interval=args.report_interval,
        output=args.output,
    ))

    sys.exit(0 if result.get("output") else 1)


if __name__ == "__main__":
    main()
