import cv2
import numpy as np
import pytest

from fieldscan.preprocessing.sharpness import (
    DEFAULT_SHARPNESS_THRESHOLD,
    estimate_sharpness,
    is_sharp,
    laplacian_variance,
)
from fieldscan.types.frame import Frame


def test_flat_image_scores_zero():
    img = np.full((100, 120, 3), 128, dtype=np.uint8)
    assert estimate_sharpness(Frame(img)) == 0.0


def test_blur_lowers_score(sharp_image):
    scores = [estimate_sharpness(sharp_image)]
    for sigma in (1, 3, 8):
        scores.append(estimate_sharpness(cv2.GaussianBlur(sharp_image, (0, 0), sigmaX=sigma)))
    assert scores == sorted(scores, reverse=True)
    assert scores[0] > DEFAULT_SHARPNESS_THRESHOLD > scores[-1]


def test_known_value():
    # single bright pixel in the centre of a 3x3 -> one interior sample
    img = np.zeros((3, 3), dtype=np.uint8)
    img[1, 1] = 10
    assert laplacian_variance(img) == 0.0
    img = np.zeros((5, 5), dtype=np.uint8)
    img[2, 2] = 10
    # interior 3x3: centre -40, four neighbours +10, corners 0
    lap = np.array([[0, 10, 0], [10, -40, 10], [0, 10, 0]], dtype=np.float64)
    assert laplacian_variance(img) == pytest.approx(lap.var())


@pytest.mark.parametrize("shape", [(2, 50), (50, 2), (1, 1)])
def test_tiny_images_score_zero(shape):
    assert laplacian_variance(np.ones(shape, dtype=np.uint8)) == 0.0


def test_is_sharp_uses_threshold(sharp_image, blurry_image):
    assert is_sharp(Frame(sharp_image))
    assert not is_sharp(Frame(blurry_image))
    assert is_sharp(Frame(blurry_image), threshold=0.0)


@pytest.mark.benchmark
def test_gate_performance(benchmark, sharp_image):
    # the gate runs on every full-resolution frame before any OCR
    score = benchmark(estimate_sharpness, sharp_image)
    assert score > DEFAULT_SHARPNESS_THRESHOLD
