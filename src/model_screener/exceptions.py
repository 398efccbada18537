"""Exception hierarchy for the model screener."""

__all__ = [
    'ScreenerError',
    'UnsupportedFileTypeError',
    'ArtifactFormatError',
    'LoadError',
    'ModelLoadError',
    'InferenceError',
]

REEXPORT_HINT = (
    "Please reconvert your Keras model using:\n\n"
    "tensorflowjs_converter --input_format=keras your_model.h5 output_dir/"
)


class ScreenerError(Exception):
    """Base class for all screener errors."""


class UnsupportedFileTypeError(ScreenerError, ValueError):
    """The supplied file is not an image."""

    def __init__(self, mime_type: str):
        self.mime_type = mime_type
        super().__init__(f"Unsupported file type: {mime_type!r}. Please upload an image file.")


class ArtifactFormatError(ScreenerError, ValueError):
    """A model.json could not be decoded into model artifacts."""


class LoadError(ScreenerError):
    """Raised by a model runtime when a topology document is structurally invalid."""


class ModelLoadError(ScreenerError):
    """Both the direct and the patched load failed."""

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason
        message = f"Failed to load model from {path}. The model format may be incompatible."
        if reason:
            message += f" ({reason})"
        super().__init__(f"{message} {REEXPORT_HINT}")


class InferenceError(ScreenerError, RuntimeError):
    """Running the model or interpreting its output failed."""
