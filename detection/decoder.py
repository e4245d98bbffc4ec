import math
from dataclasses import dataclass, field
from typing import Optional, Tuple

from detection.errors import MalformedOutputError

RECORD_WIDTH = 6  # x1, y1, x2, y2, conf, class_id


@dataclass(frozen=True)
class Detection:
    """Tek bir kutu. Koordinatlar hedef görüntünün piksel uzayında."""
    x1: int
    y1: int
    x2: int
    y2: int
    confidence: float
    class_id: int
    # Kesilmemiş köşeler; ölçekleme bunlar üzerinden yapılır
    raw_box: Optional[Tuple[float, float, float, float]] = field(
        default=None, compare=False, repr=False
    )

    @property
    def box(self):
        return self.x1, self.y1, self.x2, self.y2

    @property
    def width(self):
        return self.x2 - self.x1

    @property
    def height(self):
        return self.y2 - self.y1

    def label(self, class_names=None):
        name = (class_names or {}).get(self.class_id)
        if name:
            return f"{name}:{self.confidence:.2f}"
        return f"cls {self.class_id}:{self.confidence:.2f}"

    def to_dict(self):
        return {
            "bbox": [self.x1, self.y1, self.x2, self.y2],
            "confidence": round(self.confidence, 4),
            "class_id": self.class_id,
        }


def _make_detection(x1, y1, x2, y2, conf, cls_id):
    raw = (float(x1), float(y1), float(x2), float(y2))
    # int() sıfıra doğru keser (rounding yok)
    x1, y1, x2, y2 = (int(v) for v in raw)
    return Detection(
        x1=min(x1, x2), y1=min(y1, y2),
        x2=max(x1, x2), y2=max(y1, y2),
        confidence=float(conf),
        class_id=int(cls_id),
        raw_box=raw,
    )


def decode(output, threshold=0.25):
    """
    [1, N, 6] çıkış tensörünü Detection akışına çevirir.

    Shape hemen kontrol edilir; satırlar ise lazy olarak, modelin verdiği sırayla
    (0..N-1) gezilir. conf > threshold olmayan satırlar sessizce atlanır.
    Koordinatı ya da sınıfı sonlu olmayan (NaN/inf) ve sınıfı negatif olan
    (-1 padding) satırlar da atlanır. NMS uygulanmaz.
    """
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"threshold 0-1 aralığında olmalı: {threshold}")

    shape = output.shape
    if len(shape) != 3 or shape[0] != 1:
        raise MalformedOutputError(f"[1, N, {RECORD_WIDTH}] bekleniyordu, gelen: {list(shape)}")
    if shape[2] != RECORD_WIDTH:
        raise MalformedOutputError(
            f"Son boyut {RECORD_WIDTH} olmalı (x1,y1,x2,y2,conf,cls), gelen: {shape[2]}"
        )
    if shape[1] <= 0:
        raise MalformedOutputError("Çıkış tensöründe hiç aday yok (N=0)")

    return _iter_detections(output.view()[0], threshold)


def _iter_detections(records, threshold):
    for row in records:
        conf = float(row[4])
        if math.isnan(conf) or not conf > threshold:
            continue
        coords = [float(v) for v in row[:4]]
        cls_id = float(row[5])
        if not all(math.isfinite(v) for v in coords) or not math.isfinite(cls_id):
            continue
        if cls_id < 0:
            continue
        yield _make_detection(*coords, conf, cls_id)


def rescale_detections(detections, from_size, to_size):
    """
    Model giriş uzayından (from_size = (w, h)) orijinal görüntü uzayına (to_size) taşır.
    Ölçekleme ham float köşelerle yapılır, tamsayıya sadece bir kez kesilir.
    """
    fw, fh = from_size
    tw, th = to_size
    if fw <= 0 or fh <= 0:
        raise ValueError(f"Geçersiz kaynak boyut: {from_size}")
    sx, sy = tw / fw, th / fh

    for det in detections:
        x1, y1, x2, y2 = det.raw_box if det.raw_box is not None else det.box
        yield _make_detection(
            x1 * sx, y1 * sy, x2 * sx, y2 * sy,
            det.confidence, det.class_id,
        )
