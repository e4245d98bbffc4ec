import os
from dataclasses import replace

import cv2
import numpy as np
import pytest

from conftest import FakeEngine, make_output
from detection.errors import ImageLoadError, MalformedOutputError
from detection.pipeline import DetectionPipeline


def _write_image(path, width=128, height=32):
    img = np.full((height, width, 3), 127, dtype=np.uint8)
    cv2.imwrite(str(path), img)
    return str(path)


def _pipeline(config, output):
    engine = FakeEngine(output)
    return DetectionPipeline(engine, engine.load(config.model_path), config), engine


def test_end_to_end_with_fake_engine(tmp_path, small_config):
    """
    Integration Test: decode -> prepare -> invoke -> decode -> rescale -> draw
    """
    image_path = _write_image(tmp_path / "in.png", width=128, height=32)
    pipeline, engine = _pipeline(small_config, make_output([10, 10, 50, 50, 0.9, 3]))

    result = pipeline.run(image_path)

    # Engine tek çağrı, [1,3,64,64] giriş
    assert len(engine.calls) == 1
    (name, tensor), = engine.calls[0].inputs
    assert name == "images"
    assert tensor.shape == (1, 3, 64, 64)
    assert engine.calls[0].output_names == ("output0",)

    # 64x64 -> 128x32 ölçekleme
    assert len(result.detections) == 1
    assert result.detections[0].box == (20, 5, 100, 25)
    assert result.image_size == (128, 32)

    assert os.path.exists(small_config.output_path), "Sonuç görüntüsü yazılmalı"
    for key in ("pre_process", "inference", "post_process", "total", "render"):
        assert key in result.timings


def test_rescale_uses_fractional_model_coordinates(tmp_path, small_config):
    """
    Integration Test: 64x64 -> 192x192, 10.9 * 3 = 32.7 -> 32
    """
    image_path = _write_image(tmp_path / "in.png", width=192, height=192)
    pipeline, _ = _pipeline(small_config, make_output([10.9, 10.9, 50.9, 50.9, 0.9, 3]))

    result = pipeline.run(image_path)
    assert result.detections[0].box == (32, 32, 152, 152)


def test_rescale_can_be_disabled(tmp_path, small_config):
    cfg = replace(small_config, rescale_boxes=False)
    image_path = _write_image(tmp_path / "in.png", width=128, height=32)
    pipeline, _ = _pipeline(cfg, make_output([10, 10, 50, 50, 0.9, 3]))

    result = pipeline.run(image_path)
    assert result.detections[0].box == (10, 10, 50, 50)


def test_detect_returns_timings(small_config, bgr_image):
    pipeline, _ = _pipeline(small_config, make_output([1, 2, 3, 4, 0.2, 0]))
    detections, timings = pipeline.detect(bgr_image)

    assert detections == [], "Eşik altındaki aday düşürülmeli"
    assert timings["total"] >= timings["inference"] >= 0


def test_missing_image_aborts_without_output(tmp_path, small_config):
    pipeline, engine = _pipeline(small_config, make_output([10, 10, 50, 50, 0.9, 3]))

    with pytest.raises(ImageLoadError, match="Görüntü yüklenemedi"):
        pipeline.run(str(tmp_path / "nope.png"))

    assert engine.calls == [], "Görüntü yoksa engine çağrılmamalı"
    assert not os.path.exists(small_config.output_path)


def test_malformed_output_aborts_without_output(tmp_path, small_config):
    image_path = _write_image(tmp_path / "in.png")
    pipeline, _ = _pipeline(small_config, np.zeros((1, 4, 5), dtype=np.float32))

    with pytest.raises(MalformedOutputError):
        pipeline.run(image_path)
    assert not os.path.exists(small_config.output_path), "Hata durumunda kısmi çıktı yazılmamalı"


def test_explicit_io_names_are_used(small_config, bgr_image):
    cfg = replace(small_config, input_name="pixel_values", output_name="dets")
    engine = FakeEngine(make_output([1, 1, 2, 2, 0.9, 0]), input_name="pixel_values", output_name="dets")
    pipeline = DetectionPipeline(engine, engine.load(cfg.model_path), cfg)

    detections, _ = pipeline.detect(bgr_image)
    assert len(detections) == 1
    assert engine.calls[0].output_names == ("dets",)


def test_run_requires_image_path(small_config):
    pipeline, _ = _pipeline(small_config, make_output())
    with pytest.raises(ValueError):
        pipeline.run()
