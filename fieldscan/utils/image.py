from typing import Optional, Tuple

import cv2
import numpy as np


def to_gray(img: np.ndarray) -> np.ndarray:
    """Luminance of a BGR/BGRA image; single-channel input is returned as is."""
    if img.ndim == 2:
        return img
    if img.shape[2] == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)


def resize_to_width(
    img: np.ndarray, width: int, allow_upscale: bool = True
) -> Tuple[np.ndarray, float]:
    """Resample ``img`` to ``width`` pixels wide keeping the aspect ratio.

    Returns the resized image and the applied scale factor.
    """
    h, w = img.shape[:2]
    scale = width / float(w)
    if not allow_upscale:
        scale = min(1.0, scale)
    if abs(scale - 1.0) < 1e-6:
        return img, 1.0
    new_w = max(1, int(round(w * scale)))
    new_h = max(1, int(round(h * scale)))
    interp = cv2.INTER_AREA if scale < 1.0 else cv2.INTER_CUBIC
    return cv2.resize(img, (new_w, new_h), interpolation=interp), scale


def encode_jpeg(img: np.ndarray, quality: int = 80) -> Optional[bytes]:
    ok, buf = cv2.imencode(".jpg", img, [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)])
    return buf.tobytes() if ok else None
