class DetectionPipelineError(RuntimeError):
    """Pipeline hatalarının ortak tabanı. Hepsi tek bir çalıştırma için terminaldir."""


class ImageLoadError(DetectionPipelineError):
    pass


class ModelLoadError(DetectionPipelineError):
    pass


class InferenceEngineError(DetectionPipelineError):
    pass


class MalformedOutputError(DetectionPipelineError):
    pass


class WriteError(DetectionPipelineError):
    pass
