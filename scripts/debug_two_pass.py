"""Single two-pass OCR run on one image with all knobs exposed.

    python scripts/debug_two_pass.py samples/about_serial.jpg --scale 400 --psm 7
"""
import argparse
import json
import logging
import sys
from pathlib import Path

import cv2

# Allow repo imports
sys.path.append(str(Path(__file__).resolve().parents[1]))

from fieldscan.config import ScanConfig
from fieldscan.errors import FieldScanError
from fieldscan.ocr.debug import SCALE_CHOICES, run_two_pass_debug
from fieldscan.scan.builder import build_session
from fieldscan.scan.sources import StillImageSource

WHITELISTS = {
    "none": None,
    "alnum": "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789",
    "alnum-no-io": "ABCDEFGHJKLMNPQRSTUVWXYZ0123456789",
    "digits": "0123456789",
}


def main():
    ap = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    ap.add_argument("image", type=Path)
    ap.add_argument("--scale", type=int, default=400, choices=SCALE_CHOICES)
    ap.add_argument("--psm", type=int, default=7, choices=[3, 6, 7, 8, 11])
    ap.add_argument("--oem", type=int, default=1, choices=[0, 1, 2, 3])
    ap.add_argument("--whitelist", default="none", choices=sorted(WHITELISTS))
    ap.add_argument("--preprocess", default="none",
                    choices=["none", "grayscale", "threshold", "invert", "sharpen"])
    ap.add_argument("--tessdata-dir", default=None, help="e.g. a tessdata_fast or tessdata_best checkout")
    ap.add_argument("--keyword", default="serial")
    ap.add_argument("--save-crop", type=Path, default=None)
    args = ap.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")

    overrides = {"oem": args.oem}
    if args.tessdata_dir:
        overrides["tessdata_dir"] = args.tessdata_dir
    config = ScanConfig.from_env(**overrides)
    try:
        session = build_session(config)
        with StillImageSource(args.image) as source:
            image = source.read().image
    except FieldScanError as e:
        logging.error(str(e))
        return 2

    try:
        rep = run_two_pass_debug(
            session, image,
            scale_pct=args.scale, psm=args.psm, whitelist=WHITELISTS[args.whitelist],
            preprocess=args.preprocess, keyword=args.keyword,
        )
    except FieldScanError as e:
        logging.error(f"Recognition failed: {e}")
        return 1
    finally:
        session.close()
    if args.save_crop and rep.crop_image is not None:
        cv2.imwrite(str(args.save_crop), rep.crop_image)
    print(json.dumps({
        "source": "x".join(map(str, rep.source_size)),
        "label": rep.label_text,
        "lines": rep.lines,
        "crop": rep.crop_info,
        "text": rep.raw_text,
        "serial": rep.serial,
        "elapsed_ms": rep.elapsed_ms,
    }, indent=2, ensure_ascii=False))
    return 0 if rep.found_label else 1


if __name__ == "__main__":
    sys.exit(main())
