"""
Komut satırı.

    detection-pipeline detect images/car.png --model models/yolov10n.onnx --output out.jpg
    detection-pipeline inspect --model models/yolov10n.onnx
    detection-pipeline benchmark images/car.png --iterations 200 --warmup 20
"""

import argparse
import json
import sys

from detection.config import load_config
from detection.engine import EngineEnvironment, OnnxRuntimeEngine
from detection.errors import (
    ImageLoadError,
    InferenceEngineError,
    MalformedOutputError,
    ModelLoadError,
    WriteError,
)
from detection.pipeline import DetectionPipeline
from monitoring.latency import run_benchmark
from monitoring.logger import configure_logging, get_logger

logger = get_logger("CLI")

EXIT_CODES = {
    ImageLoadError: 2,
    ModelLoadError: 3,
    InferenceEngineError: 4,
    MalformedOutputError: 5,
    WriteError: 6,
}


def _global_opts(default=None):
    # Subcommand'dan sonra da verilebilsin; SUPPRESS üstteki değeri ezmez
    opts = argparse.ArgumentParser(add_help=False)
    opts.add_argument("--config", default=default, help="YAML config dosyası (varsayılan: $DETECTION_CONFIG)")
    opts.add_argument("--model", dest="model_path", default=default, help="ONNX model yolu")
    opts.add_argument("--log-type", choices=["colored", "json"], default=default, help="Log formatı")
    opts.add_argument("--log-level", default=default, help="DEBUG, INFO, WARNING, ...")
    return opts


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        prog="detection-pipeline",
        description="ONNX Runtime ile tek görüntü üzerinde nesne tespiti.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        parents=[_global_opts()],
    )
    sub = p.add_subparsers(dest="command", required=True)
    common = _global_opts(default=argparse.SUPPRESS)

    # detect ve benchmark ortak ayarları
    run_opts = argparse.ArgumentParser(add_help=False)
    run_opts.add_argument("image", nargs="?", help="Girdi görüntü")
    run_opts.add_argument("--threshold", dest="conf_threshold", type=float, help="Confidence eşiği")
    run_opts.add_argument("--width", dest="input_width", type=int, help="Model giriş genişliği")
    run_opts.add_argument("--height", dest="input_height", type=int, help="Model giriş yüksekliği")

    det = sub.add_parser(
        "detect", parents=[common, run_opts], help="Görüntüde nesne bul, kutuları çiz ve kaydet"
    )
    det.add_argument("--output", dest="output_path", help="Çıktı görüntü yolu")
    det.add_argument(
        "--no-rescale", dest="rescale_boxes", action="store_false", default=None,
        help="Kutuları orijinal görüntü boyutuna ölçekleme",
    )

    sub.add_parser("inspect", parents=[common], help="Model giriş/çıkış ve metadata bilgisini yazdır")

    bench = sub.add_parser(
        "benchmark", parents=[common, run_opts], help="Aynı görüntü üzerinde latency ölç"
    )
    bench.add_argument("--iterations", type=int, default=100)
    bench.add_argument("--warmup", type=int, default=10)

    return p.parse_args(argv)


def _overrides(args):
    keys = ("model_path", "log_type", "log_level", "output_path", "conf_threshold",
            "input_width", "input_height", "rescale_boxes")
    overrides = {k: getattr(args, k, None) for k in keys}
    overrides["image_path"] = getattr(args, "image", None)
    return overrides


def _inspect(engine, handle):
    report = {
        "model": handle.path,
        "inputs": [spec.to_dict() for spec in engine.declared_inputs(handle)],
        "outputs": [spec.to_dict() for spec in engine.declared_outputs(handle)],
        "metadata": engine.metadata(handle).to_dict(),
    }
    print(json.dumps(report, indent=4, default=str))
    return report


def run(args):
    cfg = load_config(args.config, overrides=_overrides(args))
    configure_logging(cfg.log_type, cfg.log_level)

    with EngineEnvironment(log_severity=cfg.session.log_severity) as env:
        engine = OnnxRuntimeEngine(env, cfg.session)
        handle = engine.load(cfg.model_path)

        if args.command == "inspect":
            _inspect(engine, handle)
            return 0

        pipeline = DetectionPipeline(engine, handle, cfg)

        if args.command == "benchmark":
            if not cfg.image_path:
                raise ValueError("Benchmark için girdi görüntü gerekli")
            image = pipeline.surface.decode(cfg.image_path)
            report = run_benchmark(pipeline, image, args.iterations, args.warmup)
            print(json.dumps(report, indent=4))
            return 0

        result = pipeline.run()
        for det in result.detections:
            print(f"{det.label(cfg.class_names)} -> {list(det.box)}")
        return 0


def main(argv=None):
    args = parse_args(argv)
    try:
        return run(args)
    except tuple(EXIT_CODES) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return EXIT_CODES[type(e)]
    except (ValueError, FileNotFoundError) as e:
        logger.error(f"Geçersiz ayar: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
