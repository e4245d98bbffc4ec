import numpy as np

from detection.errors import ImageLoadError
from detection.image import OpenCVImageSurface
from detection.tensor import TensorBuffer

PIXEL_MAX = 255.0


def prepare(image, target_width, target_height, surface=None):
    """
    Frame -> [1, 3, H, W] float32 tensor.

    Resize (bilinear) -> 0-1 normalize -> HWC to CHW (R, G, B planes).
    Orijinal frame değiştirilmez.
    """
    # Boş frame kontrolü her şeyden önce
    if image is None or image.is_empty:
        source = getattr(image, "source", None)
        raise ImageLoadError(f"Görüntü decode edilemedi (sıfır boyut): {source}")
    if image.channels != 3:
        raise ImageLoadError(f"3 kanallı görüntü bekleniyordu, gelen: {image.channels}")
    if target_width <= 0 or target_height <= 0:
        raise ValueError(f"Geçersiz hedef boyut: {target_width}x{target_height}")

    surface = surface or OpenCVImageSurface()
    resized = surface.resize(image, target_width, target_height)

    # HWC -> CHW
    planar = resized.pixels.transpose((2, 0, 1))
    if resized.channel_order == "BGR":
        planar = planar[::-1]
    planar = np.ascontiguousarray(planar).astype(np.float32) / PIXEL_MAX

    return TensorBuffer.from_array(np.expand_dims(planar, axis=0), dtype=np.float32)


def to_interleaved(tensor):
    """[1, 3, H, W] planar tensor -> HxWx3 float array (RGB)."""
    shape = tensor.shape
    if len(shape) != 4 or shape[0] != 1 or shape[1] != 3:
        raise ValueError(f"[1, 3, H, W] bekleniyordu, gelen: {list(shape)}")
    return np.ascontiguousarray(tensor.view()[0].transpose((1, 2, 0)))
