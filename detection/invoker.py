from dataclasses import dataclass
from typing import Tuple

from detection.errors import InferenceEngineError
from detection.tensor import TensorBuffer
from monitoring.logger import get_logger

logger = get_logger("Invoker")


@dataclass(frozen=True)
class ModelBinding:
    """Sıralı (isim, tensor) girişleri ve istenen çıkış isimleri."""
    inputs: Tuple[Tuple[str, TensorBuffer], ...]
    output_names: Tuple[str, ...]

    @classmethod
    def single(cls, input_name, tensor, output_name):
        return cls(inputs=((input_name, tensor),), output_names=(output_name,))


class InferenceInvoker:
    """
    Binding'i engine'e verip tek bir execute çağrısı yapar.
    İsim doğrulaması yapmaz; engine hataları olduğu gibi yukarı cikar.
    """

    def __init__(self, engine, handle):
        self.engine = engine
        self.handle = handle

    def run(self, bindings):
        logger.debug(
            f"Engine çağrılıyor: inputs={[n for n, _ in bindings.inputs]} outputs={list(bindings.output_names)}"
        )
        outputs = self.engine.execute(self.handle, bindings)
        missing = [name for name in bindings.output_names if name not in outputs]
        if missing:
            raise InferenceEngineError(f"Engine istenen çıkışları döndürmedi: {missing}")
        return {name: outputs[name] for name in bindings.output_names}
