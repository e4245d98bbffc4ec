from fastapi import FastAPI, UploadFile, File, HTTPException
from fastapi.concurrency import run_in_threadpool
import uvicorn
import sys
import os

# Proje ana dizinini path'e ekle
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from detection.config import load_config
from detection.engine import EngineEnvironment, OnnxRuntimeEngine
from detection.errors import (
    DetectionPipelineError,
    ImageLoadError,
    InferenceEngineError,
    MalformedOutputError,
)
from detection.pipeline import DetectionPipeline
from monitoring.latency import LatencyMeter, STAGES
from monitoring.logger import configure_logging, get_logger

try:
    from api.schemas import DetectionResponse, MetricsResponse, ModelResponse
except ImportError:
    from schemas import DetectionResponse, MetricsResponse, ModelResponse

# JSON Logging
logger = get_logger("API", log_type="json")

app = FastAPI(title="Detection Pipeline API", description="ONNX Runtime Object Detection Server")

# Global Değişkenler
pipeline = None
environment = None
meter = LatencyMeter(buffer_len=100)
last_error = None


@app.on_event("startup")
async def startup_event():
    """Config'i oku, ORT ortamını kur ve modeli yükle"""
    global pipeline, environment

    cfg = load_config()
    configure_logging("json", cfg.log_level)

    environment = EngineEnvironment(log_severity=cfg.session.log_severity).init()
    try:
        logger.info(f"Model yükleniyor: {cfg.model_path}...")
        engine = OnnxRuntimeEngine(environment, cfg.session)
        handle = engine.load(cfg.model_path)
        pipeline = DetectionPipeline(engine, handle, cfg)
        logger.info("Model başarıyla yüklendi!")
    except DetectionPipelineError as e:
        logger.critical(f"Kritik Hata: Model yüklenemedi -> {e}")


@app.on_event("shutdown")
async def shutdown_event():
    global pipeline
    pipeline = None
    if environment is not None:
        environment.teardown()


def _require_pipeline():
    if pipeline is None:
        logger.error("Request failed: Model not loaded")
        raise HTTPException(status_code=503, detail="Model servisi aktif değil.")
    return pipeline


@app.get("/health")
def health_check():
    p = _require_pipeline()
    return {"status": "healthy", "model": p.handle.path}


@app.get("/model", response_model=ModelResponse)
def model_info():
    p = _require_pipeline()
    return {
        "model": p.handle.path,
        "inputs": [spec.to_dict() for spec in p.engine.declared_inputs(p.handle)],
        "outputs": [spec.to_dict() for spec in p.engine.declared_outputs(p.handle)],
        "metadata": p.engine.metadata(p.handle).to_dict(),
    }


@app.post("/detect", response_model=DetectionResponse)
async def detect_objects(file: UploadFile = File(...)):
    """Görüntü -> bbox + confidence + inference time"""
    global last_error
    p = _require_pipeline()

    contents = await file.read()
    try:
        image = await run_in_threadpool(p.surface.decode_bytes, contents)
    except ImageLoadError as e:
        logger.error(f"Image decode failed: {e}")
        raise HTTPException(status_code=400, detail="Geçersiz resim dosyası.")

    try:
        # cv2 ve ORT bloklar; event loop yerine thread pool'da çalışsın
        detections, timings = await run_in_threadpool(p.detect, image)
    except (InferenceEngineError, MalformedOutputError) as e:
        last_error = f"{type(e).__name__}: {e}"
        logger.error(f"Inference failed: {e}")
        raise HTTPException(status_code=500, detail="Inference hatası")

    meter.record(timings)
    results = [
        {**det.to_dict(), "label": det.label(p.config.class_names)}
        for det in detections
    ]

    logger.info(
        f"Detection Success: {len(results)} objects in {round(timings['total'], 2)}ms",
        extra={"stage": "detect", "duration_ms": round(timings["total"], 2)},
    )

    return {
        "inference_time_ms": round(timings["total"], 2),
        "image_width": image.width,
        "image_height": image.height,
        "object_count": len(results),
        "detections": results,
    }


@app.get("/metrics", response_model=MetricsResponse)
def get_metrics():
    total = meter.get_latency_stats("total")
    return {
        "fps": round(meter.get_fps(), 2),
        "request_count": meter.count,
        "latency_p50_ms": total["p50"],
        "latency_p95_ms": total["p95"],
        "stages": {stage: meter.get_latency_stats(stage) for stage in STAGES},
        "last_error": last_error,
    }


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
