import pytest

from conftest import FakeEngine, make_output
from detection.errors import InferenceEngineError
from detection.invoker import InferenceInvoker, ModelBinding
from detection.tensor import TensorBuffer


def _binding(input_name="images", output_name="output0"):
    return ModelBinding.single(input_name, TensorBuffer.zeros((1, 3, 8, 8)), output_name)


def test_single_engine_call_per_run():
    """
    Unit Test: Her run() için engine tam bir kez cagrilmali
    """
    engine = FakeEngine(make_output([10, 10, 50, 50, 0.9, 3]))
    invoker = InferenceInvoker(engine, engine.load("m.onnx"))

    outputs = invoker.run(_binding())

    assert len(engine.calls) == 1
    assert list(outputs) == ["output0"]
    assert outputs["output0"].shape == (1, 4, 6)


def test_engine_error_propagates_verbatim():
    engine = FakeEngine(make_output())
    invoker = InferenceInvoker(engine, engine.load("m.onnx"))

    with pytest.raises(InferenceEngineError, match="Bilinmeyen giriş"):
        invoker.run(_binding(input_name="wrong"))


def test_missing_output_is_engine_error():
    class PartialEngine(FakeEngine):
        def execute(self, handle, bindings):
            self.calls.append(bindings)
            return {}

    engine = PartialEngine(make_output())
    invoker = InferenceInvoker(engine, engine.load("m.onnx"))
    with pytest.raises(InferenceEngineError):
        invoker.run(_binding())


def test_binding_preserves_order():
    a, b = TensorBuffer.zeros((1,)), TensorBuffer.zeros((2,))
    binding = ModelBinding(inputs=(("a", a), ("b", b)), output_names=("y", "x"))
    assert [n for n, _ in binding.inputs] == ["a", "b"]
    assert binding.output_names == ("y", "x")
