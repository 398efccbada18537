"""Model loading with a patch-and-retry fallback."""

import logging
from pathlib import Path
from typing import Any, Optional, Protocol, Union

from model_screener.artifacts import ArtifactFetcher, ModelArtifacts, load_artifacts
from model_screener.exceptions import ModelLoadError
from model_screener.topology_patcher import patch_model_artifacts

logger = logging.getLogger(__name__)

__all__ = ['Model', 'ModelRuntime', 'ModelLoader']


class Model(Protocol):
    def predict(self, batch: Any) -> Any:
        ...

    def dispose(self) -> None:
        ...


class ModelRuntime(Protocol):
    """Inference runtime. Raises LoadError for documents it cannot deserialize."""

    def load_from_artifacts(self, artifacts: ModelArtifacts) -> Model:
        ...


class ModelLoader:
    """
    Holds at most one loaded model.

    Loading first tries the artifacts exactly as fetched. If the runtime rejects
    them, the topology is patched and the load retried once.
    """

    def __init__(self, runtime: ModelRuntime, fetcher: Optional[ArtifactFetcher] = None):
        self.runtime = runtime
        self.fetcher = fetcher
        self.current: Optional[Model] = None
        self.current_path: Optional[str] = None
        self.last_load_patched = False

    def dispose(self) -> None:
        """Release the held model, if any."""
        if self.current is not None:
            logger.debug(f"Disposing model {self.current_path}")
            self.current.dispose()
        self.current = None
        self.current_path = None

    def load(self, path: Union[str, Path]) -> Model:
        """
        Load the model at ``path``, replacing the held one.

        Args:
            path: Path or URL of the model.json

        Returns:
            The loaded model

        Raises:
            ModelLoadError: if the artifacts cannot be fetched or neither the
                direct nor the patched load succeeds
        """
        path = str(path)
        self.dispose()
        logger.info(f"Loading model from {path}...")

        try:
            artifacts = load_artifacts(path, self.fetcher)
        except Exception as e:
            # OSError, ArtifactFormatError, httpx errors, or whatever a custom fetcher raises
            logger.error(f"Fetching model artifacts failed: {e}")
            raise ModelLoadError(path, str(e)) from e

        try:
            model = self.runtime.load_from_artifacts(artifacts)
            patched = False
            logger.info("Model loaded successfully (direct load)")
        except Exception as direct_error:
            logger.warning(f"Direct load failed, trying manual patching... {direct_error}")
            try:
                model = self.runtime.load_from_artifacts(patch_model_artifacts(artifacts))
                patched = True
                logger.info("Model loaded successfully (with patching)")
            except Exception as patch_error:
                logger.error(f"Patching failed: {patch_error}", exc_info=True)
                raise ModelLoadError(path, str(patch_error)) from patch_error

        self.current = model
        self.current_path = path
        self.last_load_patched = patched
        return model

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.dispose()
        return False
