from pydantic import BaseModel
from typing import Any, Dict, List, Optional


class BoundingBox(BaseModel):
    bbox: List[int]  # [x1, y1, x2, y2]
    confidence: float
    class_id: int
    label: str


class DetectionResponse(BaseModel):
    inference_time_ms: float
    image_width: int
    image_height: int
    object_count: int
    detections: List[BoundingBox]


class TensorInfo(BaseModel):
    name: str
    shape: List[Any]
    dtype: str


class ModelResponse(BaseModel):
    model: str
    inputs: List[TensorInfo]
    outputs: List[TensorInfo]
    metadata: Dict[str, Any]


class MetricsResponse(BaseModel):
    fps: float
    request_count: int
    latency_p50_ms: float
    latency_p95_ms: float
    stages: Dict[str, Dict[str, float]]
    last_error: Optional[str] = None
