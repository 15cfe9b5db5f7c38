"""Run the scan loop on a camera or a still image and log progress.

    python scripts/scan_live.py --camera 0
    python scripts/scan_live.py --image samples/about_serial.jpg --profile phone
    python scripts/scan_live.py --image card.jpg --profile card --lang eng+tha
"""
import argparse
import logging
import sys
import time
from pathlib import Path

# Allow repo imports
sys.path.append(str(Path(__file__).resolve().parents[1]))

from fieldscan.config import ScanConfig
from fieldscan.errors import FieldScanError
from fieldscan.scan.builder import build_scanner
from fieldscan.scan.driver import ScanDriver
from fieldscan.scan.sources import CameraSource, StillImageSource
from fieldscan.scan.state_machine import display_value
from fieldscan.utils.image import encode_jpeg

logger = logging.getLogger("scan_live")


def parse_args():
    ap = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    src = ap.add_mutually_exclusive_group(required=True)
    src.add_argument("--camera", type=int, help="camera device index")
    src.add_argument("--image", type=Path, help="still image to scan")
    ap.add_argument("--profile", choices=["phone", "card"], default="phone")
    ap.add_argument("--lang", default=None, help="tesseract language(s), e.g. eng+tha")
    ap.add_argument("--preprocess", default=None,
                    choices=["none", "grayscale", "threshold", "invert", "sharpen"])
    ap.add_argument("--max-cycles", type=int, default=60, help="give up on a still image after this many cycles")
    ap.add_argument("--evidence-dir", type=Path, default=None,
                    help="write a JPEG per confirmed field here")
    ap.add_argument("-v", "--verbose", action="store_true")
    return ap.parse_args()


def report(snap, evidence_dir=None):
    logger.info(f"phase={snap.phase.value} screen={snap.current_screen.value} "
                f"frames={snap.frame_count} status={snap.status!r}")
    for kind, ranked in snap.tally.items():
        top = ", ".join(f"{v} ({n}x)" for v, n in ranked[:3])
        mark = f" => {display_value(kind, snap.confirmed[kind])}" if kind in snap.confirmed else ""
        logger.info(f"  {kind.value:16s} {snap.confidence.get(kind, 0):3d}%  {top}{mark}")
    if evidence_dir:
        evidence_dir.mkdir(parents=True, exist_ok=True)
        for kind, img in snap.evidence.items():
            data = encode_jpeg(img)
            if data:
                (evidence_dir / f"{kind.value}.jpg").write_bytes(data)


def main():
    args = parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s - %(levelname)s - %(message)s")
    overrides = {k: v for k, v in (("lang", args.lang), ("preprocess", args.preprocess)) if v}
    config = ScanConfig.from_env(**overrides)

    try:
        scanner = build_scanner(args.profile, config)
    except FieldScanError as e:
        logger.error(f"Cannot start: {e}")
        return 2

    if args.image is not None:
        driver = ScanDriver(scanner, StillImageSource(args.image))
        try:
            snap = driver.run_until_done(max_cycles=args.max_cycles)
        except FieldScanError as e:
            logger.error(f"Cannot start: {e}")
            return 2
        for note in driver.pop_notifications():
            logger.info(note)
        report(snap, args.evidence_dir)
        return 0 if snap.phase.value == "confirmed" else 1

    driver = ScanDriver(scanner, CameraSource(args.camera))
    try:
        driver.start()
    except FieldScanError as e:
        logger.error(f"Cannot start: {e}")
        return 2
    try:
        while True:
            time.sleep(1.0)
            for note in driver.pop_notifications():
                logger.info(note)
            snap = driver.snapshot()
            report(snap)
            if snap.phase.value == "confirmed":
                break
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        driver.stop()
    report(driver.snapshot(), args.evidence_dir)
    return 0


if __name__ == "__main__":
    sys.exit(main())
