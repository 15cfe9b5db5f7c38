import numpy as np
import cv2
from pathlib import Path
from PIL import Image, ImageDraw, ImageFont
from typing import Iterable, Tuple

FONT_CANDIDATES = [
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans.ttf",
    "/Library/Fonts/Arial.ttf",
    r"C:\Windows\Fonts\arial.ttf",
]


class TextRenderer:
    """Helper class for rendering synthetic phone screens and cards"""

    def __init__(self, size_scale: float = 1.0):
        self.size_scale = size_scale
        self.font_path = next((p for p in FONT_CANDIDATES if Path(p).exists()), None)

    def _font(self, size: int) -> ImageFont.ImageFont:
        size = max(10, int(size * self.size_scale))
        if self.font_path:
            return ImageFont.truetype(self.font_path, size=size)
        return ImageFont.load_default()

    def draw_text(
        self,
        image_bgr: np.ndarray,
        xy: Tuple[int, int],
        text: str,
        font_size: int = 32,
        color: Tuple[int, int, int] = (0, 0, 0),
    ) -> np.ndarray:
        """Draws text onto a BGR image."""
        rgb = np.ascontiguousarray(image_bgr[..., ::-1])
        pil_img = Image.fromarray(rgb)
        draw = ImageDraw.Draw(pil_img)
        draw.text(xy, text, fill=(color[2], color[1], color[0]), font=self._font(font_size))
        return np.ascontiguousarray(np.array(pil_img)[..., ::-1])

    def about_screen(
        self,
        rows: Iterable[Tuple[str, str]],
        size: Tuple[int, int] = (1280, 720),
        font_size: int = 40,
    ) -> np.ndarray:
        """A settings-style list: label on the left, value to its right"""
        w, h = size
        img = np.full((h, w, 3), 255, dtype=np.uint8)
        y = 60
        for label, value in rows:
            img = self.draw_text(img, (40, y), label, font_size)
            img = self.draw_text(img, (w // 2, y), value, font_size)
            cv2.line(img, (40, y + font_size + 20), (w - 40, y + font_size + 20), (220, 220, 220), 1)
            y += font_size + 50
        return img
