"""
Pipeline ayarları. YAML dosyasından ya da dict'ten okunur.

Ornek:

    model_path: models/yolov10n.onnx
    input_width: 640
    input_height: 640
    conf_threshold: 0.25
    session:
      intra_op_threads: 2
      graph_optimization: all
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml

CONFIG_ENV_VAR = "DETECTION_CONFIG"


@dataclass
class SessionConfig:
    intra_op_threads: int = 1
    graph_optimization: str = "all"
    optimized_model_path: Optional[str] = None
    enable_profiling: bool = False
    profile_prefix: str = "profiling_output"
    enable_mem_pattern: bool = True
    enable_cpu_mem_arena: bool = True
    log_severity: int = 2
    providers: List[str] = field(default_factory=lambda: ["CPUExecutionProvider"])

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SessionConfig":
        return cls(
            intra_op_threads=int(d.get("intra_op_threads", 1)),
            graph_optimization=str(d.get("graph_optimization", "all")).lower(),
            optimized_model_path=d.get("optimized_model_path"),
            enable_profiling=bool(d.get("enable_profiling", False)),
            profile_prefix=d.get("profile_prefix", "profiling_output"),
            enable_mem_pattern=bool(d.get("enable_mem_pattern", True)),
            enable_cpu_mem_arena=bool(d.get("enable_cpu_mem_arena", True)),
            log_severity=int(d.get("log_severity", 2)),
            providers=list(d.get("providers") or ["CPUExecutionProvider"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "intra_op_threads": self.intra_op_threads,
            "graph_optimization": self.graph_optimization,
            "optimized_model_path": self.optimized_model_path,
            "enable_profiling": self.enable_profiling,
            "profile_prefix": self.profile_prefix,
            "enable_mem_pattern": self.enable_mem_pattern,
            "enable_cpu_mem_arena": self.enable_cpu_mem_arena,
            "log_severity": self.log_severity,
            "providers": list(self.providers),
        }


@dataclass
class PipelineConfig:
    model_path: str = "models/yolov10n.onnx"
    image_path: Optional[str] = None
    output_path: str = "output/detections.jpg"
    input_width: int = 640
    input_height: int = 640
    conf_threshold: float = 0.25
    input_name: Optional[str] = None
    output_name: Optional[str] = None
    rescale_boxes: bool = True
    class_names: Optional[Dict[int, str]] = None
    log_type: str = "colored"
    log_level: str = "INFO"
    session: SessionConfig = field(default_factory=SessionConfig)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PipelineConfig":
        class_names = d.get("class_names")
        if isinstance(class_names, list):
            class_names = dict(enumerate(class_names))
        elif class_names is not None:
            class_names = {int(k): str(v) for k, v in class_names.items()}

        return cls(
            model_path=d.get("model_path", "models/yolov10n.onnx"),
            image_path=d.get("image_path"),
            output_path=d.get("output_path", "output/detections.jpg"),
            input_width=int(d.get("input_width", 640)),
            input_height=int(d.get("input_height", 640)),
            conf_threshold=float(d.get("conf_threshold", 0.25)),
            input_name=d.get("input_name"),
            output_name=d.get("output_name"),
            rescale_boxes=bool(d.get("rescale_boxes", True)),
            class_names=class_names,
            log_type=d.get("log_type", "colored"),
            log_level=str(d.get("log_level", "INFO")).upper(),
            session=SessionConfig.from_dict(d.get("session") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model_path": self.model_path,
            "image_path": self.image_path,
            "output_path": self.output_path,
            "input_width": self.input_width,
            "input_height": self.input_height,
            "conf_threshold": self.conf_threshold,
            "input_name": self.input_name,
            "output_name": self.output_name,
            "rescale_boxes": self.rescale_boxes,
            "class_names": dict(self.class_names) if self.class_names else None,
            "log_type": self.log_type,
            "log_level": self.log_level,
            "session": self.session.to_dict(),
        }

    def validate(self):
        if self.input_width <= 0 or self.input_height <= 0:
            raise ValueError(f"Geçersiz giriş boyutu: {self.input_width}x{self.input_height}")
        if not 0.0 <= self.conf_threshold <= 1.0:
            raise ValueError(f"conf_threshold 0-1 aralığında olmalı: {self.conf_threshold}")
        if self.log_type not in ("colored", "json"):
            raise ValueError(f"Bilinmeyen log_type: {self.log_type}")
        if self.session.intra_op_threads < 0:
            raise ValueError("intra_op_threads negatif olamaz")
        return self


def load_config(path=None, overrides=None):
    """
    YAML -> PipelineConfig. path verilmezse DETECTION_CONFIG ortam değişkenine bakar,
    o da yoksa varsayilanlar kullanılır. overrides (None olmayan degerler) en son uygulanir.
    """
    path = path or os.environ.get(CONFIG_ENV_VAR)
    data = {}
    if path:
        if not os.path.isfile(path):
            raise FileNotFoundError(f"Config dosyası bulunamadı: {path}")
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config dosyası bir mapping olmalı: {path}")

    for key, value in (overrides or {}).items():
        if value is not None:
            data[key] = value

    return PipelineConfig.from_dict(data).validate()
