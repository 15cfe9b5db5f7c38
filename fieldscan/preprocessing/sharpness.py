"""Focus-quality gate run on every frame before any OCR is attempted."""
from __future__ import annotations

import numpy as np

from fieldscan.types.frame import Frame
from fieldscan.utils.image import to_gray

DEFAULT_SHARPNESS_THRESHOLD = 100.0


def laplacian_variance(gray: np.ndarray) -> float:
    """Variance of the 4-neighbour Laplacian over interior pixels.

    Kernel is centre -4, N/S/E/W +1; the 1-pixel border is left out so no
    padding assumption leaks into the score.
    """
    if gray.ndim != 2 or gray.shape[0] < 3 or gray.shape[1] < 3:
        return 0.0
    g = gray.astype(np.float64)
    lap = (
        g[:-2, 1:-1]
        + g[2:, 1:-1]
        + g[1:-1, :-2]
        + g[1:-1, 2:]
        - 4.0 * g[1:-1, 1:-1]
    )
    return float(lap.var())


def estimate_sharpness(frame) -> float:
    """Sharpness score of a :class:`Frame` or raw image array. Higher is sharper."""
    image = frame.image if isinstance(frame, Frame) else frame
    if image is None or image.size == 0:
        return 0.0
    return laplacian_variance(to_gray(image))


def is_sharp(frame, threshold: float = DEFAULT_SHARPNESS_THRESHOLD) -> bool:
    return estimate_sharpness(frame) >= threshold
