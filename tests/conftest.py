"""
Ortak fixture'lar: sahte engine, küçük config, örnek görüntüler ve ONNX test modeli.
"""

import os
import sys

import numpy as np
import pytest

# Proje ana dizinini ekle
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from detection.config import PipelineConfig
from detection.engine import ModelHandle, ModelMetadata, TensorSpec
from detection.errors import InferenceEngineError
from detection.image import ImageFrame
from detection.tensor import TensorBuffer


class FakeEngine:
    """Gerçek model olmadan hazır çıkış tensörü döndüren engine."""

    def __init__(self, output, input_name="images", output_name="output0"):
        self.output = np.asarray(output, dtype=np.float32)
        self.input_name = input_name
        self.output_name = output_name
        self.calls = []

    def load(self, model_path):
        return ModelHandle(path=str(model_path), session=None)

    def declared_inputs(self, handle):
        return [TensorSpec(self.input_name, (1, 3, "height", "width"), "tensor(float)")]

    def declared_outputs(self, handle):
        return [TensorSpec(self.output_name, (1, self.output.shape[1], 6), "tensor(float)")]

    def execute(self, handle, bindings):
        self.calls.append(bindings)
        for name, _ in bindings.inputs:
            if name != self.input_name:
                raise InferenceEngineError(f"Bilinmeyen giriş: {name}")
        for name in bindings.output_names:
            if name != self.output_name:
                raise InferenceEngineError(f"Bilinmeyen çıkış: {name}")
        return {self.output_name: TensorBuffer.from_array(self.output)}

    def metadata(self, handle):
        return ModelMetadata(graph_name="fake", producer_name="pytest", version=1)


def make_output(*rows, n=4):
    """[1, n, 6] çıkış; verilen satırlar başa yazılır, kalanı sıfır."""
    out = np.zeros((1, max(n, len(rows)), 6), dtype=np.float32)
    for i, row in enumerate(rows):
        out[0, i] = row
    return out


@pytest.fixture
def fake_engine_factory():
    return FakeEngine


@pytest.fixture
def small_config(tmp_path):
    return PipelineConfig(
        model_path=str(tmp_path / "fake.onnx"),
        output_path=str(tmp_path / "out.png"),
        input_width=64,
        input_height=64,
        conf_threshold=0.25,
    )


@pytest.fixture
def bgr_image():
    rng = np.random.default_rng(0)
    pixels = rng.integers(0, 256, size=(48, 80, 3), dtype=np.uint8)
    return ImageFrame(pixels, channel_order="BGR", source="random")


def build_constant_detection_model(path, rows, height=8, width=8):
    """
    'images' [1,3,H,W] girişi alan, sabit [1,N,6] 'output0' döndüren küçük ONNX modeli.
    Giriş ReduceSum * 0 ile çıkışa bağlanır.
    """
    onnx = pytest.importorskip("onnx")
    from onnx import TensorProto, helper, numpy_helper

    dets = np.asarray(rows, dtype=np.float32).reshape(1, -1, 6)
    zero = np.array(0.0, dtype=np.float32)

    nodes = [
        helper.make_node("ReduceSum", ["images"], ["s"], keepdims=0),
        helper.make_node("Mul", ["s", "zero"], ["z"]),
        helper.make_node("Add", ["dets", "z"], ["output0"]),
    ]
    graph = helper.make_graph(
        nodes,
        "constant_detector",
        [helper.make_tensor_value_info("images", TensorProto.FLOAT, [1, 3, height, width])],
        [helper.make_tensor_value_info("output0", TensorProto.FLOAT, list(dets.shape))],
        initializer=[
            numpy_helper.from_array(dets, name="dets"),
            numpy_helper.from_array(zero, name="zero"),
        ],
    )
    model = helper.make_model(
        graph, producer_name="pytest", opset_imports=[helper.make_opsetid("", 13)]
    )
    model.ir_version = 8
    helper.set_model_props(model, {"model_version": "1.0"})
    onnx.save(model, str(path))
    return str(path)


def build_identity_model(path, shape=(1, 3, 2, 2)):
    onnx = pytest.importorskip("onnx")
    from onnx import TensorProto, helper

    graph = helper.make_graph(
        [helper.make_node("Identity", ["x"], ["y"])],
        "identity",
        [helper.make_tensor_value_info("x", TensorProto.FLOAT, list(shape))],
        [helper.make_tensor_value_info("y", TensorProto.FLOAT, list(shape))],
    )
    model = helper.make_model(graph, producer_name="pytest", opset_imports=[helper.make_opsetid("", 13)])
    model.ir_version = 8
    onnx.save(model, str(path))
    return str(path)


@pytest.fixture
def detection_model_path(tmp_path):
    rows = [
        [10, 10, 50, 50, 0.9, 3],
        [0, 0, 5, 5, 0.1, 1],
        [20.7, 30.2, 40.9, 60.5, 0.6, 0],
    ]
    return build_constant_detection_model(tmp_path / "const_det.onnx", rows)


@pytest.fixture
def identity_model_path(tmp_path):
    return build_identity_model(tmp_path / "identity.onnx")
