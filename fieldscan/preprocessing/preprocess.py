import cv2
import numpy as np

from fieldscan.utils.image import to_gray


class PreprocessingPipeline:
    """Optional clean-up applied to the rescaled fine-pass crop"""

    MODES = ("none", "grayscale", "threshold", "invert", "sharpen")

    def __init__(self, mode: str = "none"):
        if mode not in self.MODES:
            raise ValueError(f"Unknown preprocess mode: {mode}")
        self.mode = mode
        self.steps = {
            "none": [],
            "grayscale": [self.convert_to_grayscale],
            "threshold": [self.convert_to_grayscale, self.threshold],
            "invert": [self.invert],
            "sharpen": [self.sharpen],
        }[mode]

    def process(self, image):
        """Apply the configured steps to the image"""
        result = image
        for step in self.steps:
            result = step(result)
        return result

    def convert_to_grayscale(self, image):
        """Convert image to grayscale if it's not already"""
        return to_gray(image)

    def threshold(self, image):
        """Hard black/white split at mid-grey"""
        _, binary = cv2.threshold(image, 128, 255, cv2.THRESH_BINARY)
        return binary

    def invert(self, image):
        """Light text on dark screens reads better inverted"""
        return cv2.bitwise_not(image)

    def sharpen(self, image):
        """5*centre - (N+S+E+W), clamped to 0..255"""
        kernel = np.array([[0, -1, 0], [-1, 5, -1], [0, -1, 0]], dtype=np.float32)
        return cv2.filter2D(image, -1, kernel)
