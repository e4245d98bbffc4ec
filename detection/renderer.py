from dataclasses import dataclass
from typing import Tuple

import cv2

from detection.image import ImageFrame
from monitoring.logger import get_logger

logger = get_logger("Renderer")


@dataclass(frozen=True)
class RenderStyle:
    # Renkler BGR
    box_color: Tuple[int, int, int] = (0, 255, 0)
    box_thickness: int = 2
    text_color: Tuple[int, int, int] = (255, 0, 0)
    font: int = cv2.FONT_HERSHEY_SIMPLEX
    font_scale: float = 0.5
    text_thickness: int = 1
    text_offset: int = 5


class Renderer:
    def __init__(self, surface, output_path, style=None, class_names=None):
        self.surface = surface
        self.output_path = output_path
        self.style = style or RenderStyle()
        self.class_names = class_names

    def _colors(self, frame):
        box, text = self.style.box_color, self.style.text_color
        if frame.channel_order == "RGB":
            return tuple(reversed(box)), tuple(reversed(text))
        return box, text

    def annotate(self, image, detections):
        """Orijinal frame'in kopyasına kutu + etiket çizer."""
        canvas = image.pixels.copy()
        box_color, text_color = self._colors(image)
        s = self.style

        count = 0
        for det in detections:
            cv2.rectangle(canvas, (det.x1, det.y1), (det.x2, det.y2), box_color, s.box_thickness)
            cv2.putText(
                canvas,
                det.label(self.class_names),
                (det.x1, det.y1 - s.text_offset),
                s.font, s.font_scale, text_color, s.text_thickness,
            )
            count += 1

        logger.debug(f"{count} kutu çizildi")
        return ImageFrame(canvas, channel_order=image.channel_order, source=image.source)

    def draw(self, image, detections, output_path=None):
        frame = self.annotate(image, detections)
        path = output_path or self.output_path
        self.surface.encode_and_write(frame, path)
        logger.info(f"Sonuç kaydedildi: {path}")
        return frame
