import os
from dataclasses import dataclass
from typing import Optional, Protocol

import cv2
import numpy as np

from detection.errors import ImageLoadError, WriteError


@dataclass(frozen=True, eq=False)
class ImageFrame:
    """
    Decode edilmiş görüntü. pixels: HxWxC uint8, interleaved (row-major).
    OpenCV ile okunan frame'ler BGR sırasındadır.
    """
    pixels: Optional[np.ndarray]
    channel_order: str = "BGR"
    source: Optional[str] = None

    @property
    def height(self):
        return 0 if self.pixels is None else int(self.pixels.shape[0])

    @property
    def width(self):
        if self.pixels is None or self.pixels.ndim < 2:
            return 0
        return int(self.pixels.shape[1])

    @property
    def channels(self):
        if self.pixels is None:
            return 0
        return 1 if self.pixels.ndim == 2 else int(self.pixels.shape[2])

    @property
    def size(self):
        return self.width, self.height

    @property
    def is_empty(self):
        return self.pixels is None or self.pixels.size == 0 or self.width == 0 or self.height == 0


class ImageSurface(Protocol):
    def decode(self, path: str) -> ImageFrame:
        ...

    def decode_bytes(self, data: bytes) -> ImageFrame:
        ...

    def resize(self, frame: ImageFrame, width: int, height: int) -> ImageFrame:
        ...

    def encode_and_write(self, frame: ImageFrame, path: str) -> None:
        ...


class OpenCVImageSurface:
    """cv2 tabanlı codec / resize / yazma."""

    def __init__(self, interpolation=cv2.INTER_LINEAR):
        self.interpolation = interpolation

    def decode(self, path):
        img = cv2.imread(str(path), cv2.IMREAD_COLOR)
        if img is None or img.size == 0:
            raise ImageLoadError(f"Görüntü yüklenemedi: {path}")
        return ImageFrame(img, channel_order="BGR", source=str(path))

    def decode_bytes(self, data):
        buf = np.frombuffer(data, np.uint8)
        img = cv2.imdecode(buf, cv2.IMREAD_COLOR) if buf.size else None
        if img is None or img.size == 0:
            raise ImageLoadError("Geçersiz resim verisi")
        return ImageFrame(img, channel_order="BGR")

    def resize(self, frame, width, height):
        if frame.size == (width, height):
            return frame
        resized = cv2.resize(frame.pixels, (width, height), interpolation=self.interpolation)
        return ImageFrame(resized, channel_order=frame.channel_order, source=frame.source)

    def encode_and_write(self, frame, path):
        path = str(path)
        if frame.is_empty:
            raise WriteError(f"Boş görüntü yazılamaz: {path}")
        out_dir = os.path.dirname(path)
        if out_dir and not os.path.isdir(out_dir):
            raise WriteError(f"Çıktı klasörü bulunamadı: {out_dir}")
        pixels = frame.pixels
        if frame.channel_order == "RGB" and frame.channels == 3:
            pixels = cv2.cvtColor(pixels, cv2.COLOR_RGB2BGR)
        try:
            ok = cv2.imwrite(path, pixels)
        except cv2.error as e:
            raise WriteError(f"Görüntü yazılamadı: {path} ({e})") from e
        if not ok:
            raise WriteError(f"Görüntü yazılamadı: {path}")
