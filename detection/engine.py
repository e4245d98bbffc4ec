import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol, Sequence, Tuple

import onnxruntime as ort

from detection.config import SessionConfig
from detection.errors import InferenceEngineError, ModelLoadError
from detection.tensor import TensorBuffer
from monitoring.logger import get_logger

logger = get_logger("Engine")

ORT_DEFAULT_SEVERITY = 2

GRAPH_OPTIMIZATION_LEVELS = {
    "disable": ort.GraphOptimizationLevel.ORT_DISABLE_ALL,
    "basic": ort.GraphOptimizationLevel.ORT_ENABLE_BASIC,
    "extended": ort.GraphOptimizationLevel.ORT_ENABLE_EXTENDED,
    "all": ort.GraphOptimizationLevel.ORT_ENABLE_ALL,
}


@dataclass(frozen=True)
class TensorSpec:
    name: str
    shape: Tuple[Any, ...]
    dtype: str

    def to_dict(self):
        return {"name": self.name, "shape": list(self.shape), "dtype": self.dtype}


@dataclass(frozen=True)
class ModelMetadata:
    graph_name: str = ""
    domain: str = ""
    description: str = ""
    producer_name: str = ""
    version: int = 0
    custom: Dict[str, str] = field(default_factory=dict)

    def to_dict(self):
        return {
            "graph_name": self.graph_name,
            "domain": self.domain,
            "description": self.description,
            "producer_name": self.producer_name,
            "version": self.version,
            "custom": dict(self.custom),
        }


@dataclass
class ModelHandle:
    path: str
    session: Any


class InferenceEngine(Protocol):
    """Model yükleyip isimli tensörler üzerinde graph çalıştırabilen her şey."""

    def load(self, model_path: str) -> ModelHandle:
        ...

    def declared_inputs(self, handle: ModelHandle) -> List[TensorSpec]:
        ...

    def declared_outputs(self, handle: ModelHandle) -> List[TensorSpec]:
        ...

    def execute(self, handle: ModelHandle, bindings) -> Dict[str, TensorBuffer]:
        ...

    def metadata(self, handle: ModelHandle) -> ModelMetadata:
        ...


class EngineEnvironment:
    """
    Process genelindeki ONNX Runtime ayarlari (log seviyesi).
    Bootstrap katmanı init() eder, çıkışta teardown() eder; engine'e handle olarak verilir.
    """

    def __init__(self, log_severity=ORT_DEFAULT_SEVERITY, log_id="DetectionPipeline"):
        self.log_severity = log_severity
        self.log_id = log_id
        self._active = False

    @property
    def active(self):
        return self._active

    def init(self):
        if self._active:
            return self
        ort.set_default_logger_severity(self.log_severity)
        self._active = True
        logger.debug(f"ORT ortamı hazır: {self.log_id} (severity={self.log_severity}, ort={ort.__version__})")
        return self

    def teardown(self):
        if not self._active:
            return
        ort.set_default_logger_severity(ORT_DEFAULT_SEVERITY)
        self._active = False
        logger.debug(f"ORT ortamı kapatıldı: {self.log_id}")

    def __enter__(self):
        return self.init()

    def __exit__(self, exc_type, exc, tb):
        self.teardown()
        return False


def build_session_options(cfg, log_id="DetectionPipeline"):
    if cfg.graph_optimization not in GRAPH_OPTIMIZATION_LEVELS:
        raise ValueError(f"Bilinmeyen graph optimization seviyesi: {cfg.graph_optimization}")

    so = ort.SessionOptions()
    so.logid = log_id
    so.log_severity_level = cfg.log_severity
    so.intra_op_num_threads = cfg.intra_op_threads
    so.graph_optimization_level = GRAPH_OPTIMIZATION_LEVELS[cfg.graph_optimization]
    so.enable_mem_pattern = cfg.enable_mem_pattern
    so.enable_cpu_mem_arena = cfg.enable_cpu_mem_arena

    # Optimize edilmiş graph'i incelemek için diske yaz
    if cfg.optimized_model_path:
        so.optimized_model_filepath = cfg.optimized_model_path

    if cfg.enable_profiling:
        so.enable_profiling = True
        so.profile_file_prefix = cfg.profile_prefix
    return so


def resolve_providers(requested: Sequence[str]):
    available = ort.get_available_providers()
    providers = [p for p in requested if p in available]
    for p in requested:
        if p not in available:
            logger.warning(f"Execution provider mevcut değil, atlanıyor: {p}")
    return providers or ["CPUExecutionProvider"]


class OnnxRuntimeEngine:
    def __init__(self, environment, session_config=None):
        if not environment.active:
            raise RuntimeError("EngineEnvironment init() edilmeden engine oluşturulamaz")
        self.environment = environment
        self.session_config = session_config or SessionConfig()

    def load(self, model_path):
        model_path = str(model_path)
        if not os.path.isfile(model_path):
            raise ModelLoadError(f"Model dosyası bulunamadı: {model_path}")

        so = build_session_options(self.session_config, self.environment.log_id)
        providers = resolve_providers(self.session_config.providers)
        try:
            session = ort.InferenceSession(model_path, sess_options=so, providers=providers)
        except Exception as e:
            raise ModelLoadError(f"ONNX modeli yüklenemedi: {model_path} ({e})") from e

        logger.info(
            f"Model yüklendi: {model_path} | providers={session.get_providers()} "
            f"| opt={self.session_config.graph_optimization}"
        )
        return ModelHandle(path=model_path, session=session)

    def declared_inputs(self, handle):
        return [TensorSpec(i.name, tuple(i.shape), i.type) for i in handle.session.get_inputs()]

    def declared_outputs(self, handle):
        return [TensorSpec(o.name, tuple(o.shape), o.type) for o in handle.session.get_outputs()]

    def execute(self, handle, bindings):
        feeds = {name: tensor.to_numpy() for name, tensor in bindings.inputs}
        output_names = list(bindings.output_names)
        try:
            results = handle.session.run(output_names, feeds)
        except Exception as e:
            raise InferenceEngineError(f"Inference hatası: {e}") from e
        return {name: TensorBuffer.from_array(arr) for name, arr in zip(output_names, results)}

    def metadata(self, handle):
        meta = handle.session.get_modelmeta()
        return ModelMetadata(
            graph_name=meta.graph_name,
            domain=meta.domain,
            description=meta.description,
            producer_name=meta.producer_name,
            version=int(meta.version),
            custom=dict(meta.custom_metadata_map or {}),
        )
