import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from detection.decoder import Detection, decode, rescale_detections
from detection.image import OpenCVImageSurface
from detection.invoker import InferenceInvoker, ModelBinding
from detection.preprocess import prepare
from detection.renderer import Renderer
from monitoring.logger import get_logger

logger = get_logger("Pipeline")


@dataclass
class PipelineResult:
    detections: List[Detection]
    image_size: tuple
    output_path: Optional[str]
    timings: Dict[str, float] = field(default_factory=dict)


class DetectionPipeline:
    """
    decode -> prepare -> invoke -> decode detections -> (rescale) -> draw.
    Her aşama bir öncekinin bitmesini bekler; dosya sadece en sonda yazılır.
    """

    def __init__(self, engine, handle, config, surface=None, renderer=None):
        self.engine = engine
        self.handle = handle
        self.config = config
        self.surface = surface or OpenCVImageSurface()
        self.renderer = renderer or Renderer(
            self.surface, config.output_path, class_names=config.class_names
        )
        self.invoker = InferenceInvoker(engine, handle)

        # İsim verilmediyse modelin ilk giriş/çıkışı
        self.input_name = config.input_name or engine.declared_inputs(handle)[0].name
        self.output_name = config.output_name or engine.declared_outputs(handle)[0].name
        logger.info(
            f"Pipeline hazır | input={self.input_name} output={self.output_name} "
            f"| size={config.input_width}x{config.input_height} | conf>{config.conf_threshold}"
        )

    def detect(self, image):
        cfg = self.config

        # 1. Pre-process
        t0 = time.time()
        tensor = prepare(image, cfg.input_width, cfg.input_height, surface=self.surface)
        t1 = time.time()

        # 2. Inference
        bindings = ModelBinding.single(self.input_name, tensor, self.output_name)
        outputs = self.invoker.run(bindings)
        t2 = time.time()

        # 3. Post-process
        detections = decode(outputs[self.output_name], cfg.conf_threshold)
        if cfg.rescale_boxes and image.size != (cfg.input_width, cfg.input_height):
            detections = rescale_detections(
                detections, (cfg.input_width, cfg.input_height), image.size
            )
        detections = list(detections)
        t3 = time.time()

        timings = {
            "pre_process": (t1 - t0) * 1000,
            "inference": (t2 - t1) * 1000,
            "post_process": (t3 - t2) * 1000,
            "total": (t3 - t0) * 1000,
        }
        logger.debug(
            f"{len(detections)} nesne | total {timings['total']:.2f} ms",
            extra={"stage": "detect", "duration_ms": round(timings["total"], 2)},
        )
        return detections, timings

    def run(self, image_path=None, output_path=None):
        image_path = image_path or self.config.image_path
        if not image_path:
            raise ValueError("Girdi görüntü yolu verilmedi")
        output_path = output_path or self.config.output_path

        image = self.surface.decode(image_path)
        detections, timings = self.detect(image)

        t0 = time.time()
        self.renderer.draw(image, detections, output_path=output_path)
        timings["render"] = (time.time() - t0) * 1000

        logger.info(f"{image_path}: {len(detections)} nesne bulundu ({timings['total']:.2f} ms)")
        return PipelineResult(
            detections=detections,
            image_size=image.size,
            output_path=output_path,
            timings=timings,
        )
