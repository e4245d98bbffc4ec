import time
import collections
import numpy as np

from monitoring.logger import get_logger

logger = get_logger("Latency")

STAGES = ("pre_process", "inference", "post_process", "total")


class LatencyMeter:
    def __init__(self, buffer_len=100):
        """
        buffer_len: Son kac calistirmaya bakilarak istatistik alinacak
        """
        self.buffer_len = buffer_len
        self.latencies = {stage: collections.deque(maxlen=buffer_len) for stage in STAGES}
        self.count = 0

    def record(self, timings):
        for stage in STAGES:
            if stage in timings:
                self.latencies[stage].append(float(timings[stage]))
        self.count += 1

    def get_fps(self):
        """Ortalama total latency üzerinden FPS"""
        total = self.latencies["total"]
        if not total:
            return 0.0
        avg = sum(total) / len(total)
        return 1000.0 / avg if avg > 0 else 0.0

    def get_latency_stats(self, stage="total"):
        values = self.latencies.get(stage)
        if not values:
            return {"avg": 0.0, "p50": 0.0, "p90": 0.0, "p95": 0.0}

        arr = np.array(values)
        return {
            "avg": round(float(np.mean(arr)), 2),
            "p50": round(float(np.percentile(arr, 50)), 2),
            "p90": round(float(np.percentile(arr, 90)), 2),
            "p95": round(float(np.percentile(arr, 95)), 2)
        }


def run_benchmark(pipeline, image, iterations=100, warmup=10):
    """
    Aynı görüntü üzerinde pipeline.detect tekrarlanir; aşama bazli avg/p50/p95 döner.
    """
    if iterations <= 0:
        raise ValueError("iterations pozitif olmalı")

    logger.info(f"Benchmark başlıyor... ({warmup} warmup, {iterations} iterasyon)")
    for _ in range(warmup):
        pipeline.detect(image)

    meter = LatencyMeter(buffer_len=iterations)
    start_global = time.time()
    for _ in range(iterations):
        _, timings = pipeline.detect(image)
        meter.record(timings)
    elapsed = time.time() - start_global

    report = {stage: meter.get_latency_stats(stage) for stage in STAGES}
    report["iterations"] = iterations
    report["throughput_fps"] = round(iterations / elapsed, 2) if elapsed > 0 else 0.0

    logger.info(
        f"Benchmark: {report['total']['avg']} ms avg | {report['throughput_fps']} FPS",
        extra={"stage": "benchmark", "duration_ms": report["total"]["avg"]},
    )
    return report
