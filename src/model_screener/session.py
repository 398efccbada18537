"""Interactive screening flow: pick a model, submit an image, show the verdict.

All steps run sequentially on one event loop. A newer flow never cancels an
older one; the older flow simply finishes without publishing its result.
"""

import asyncio
import logging
from contextlib import contextmanager
from typing import Callable, List, NamedTuple, Optional

from model_screener.config import ScreenerConfig
from model_screener.exceptions import ModelLoadError, UnsupportedFileTypeError
from model_screener.loader import ModelLoader
from model_screener.preprocessing import ImagePreprocessor, check_mime_type
from model_screener.result import ScreeningResult, extract_score, render_result

logger = logging.getLogger(__name__)

__all__ = ['ScreenerSession', 'SubmittedImage']

NOT_AN_IMAGE = "Please upload an image file."
NO_MODEL = "Please select a model first."
PREDICTION_FAILED = "Error during prediction. Check the log for details."


class SubmittedImage(NamedTuple):
    data: bytes
    mime_type: str


class ScreenerSession:
    """
    State of one screening page: the held model, the held image and the last result.

    ``notify`` receives every user-facing notice (it defaults to collecting
    them in ``notices`` only).
    """

    def __init__(
        self,
        loader: ModelLoader,
        config: Optional[ScreenerConfig] = None,
        notify: Optional[Callable[[str], None]] = None,
        preprocessor: Optional[ImagePreprocessor] = None,
    ):
        self.loader = loader
        self.config = config or ScreenerConfig()
        self.preprocessor = preprocessor or ImagePreprocessor(target_size=self.config.image_size)
        self.notify = notify
        self.notices: List[str] = []
        self.image: Optional[SubmittedImage] = None
        self.result: Optional[ScreeningResult] = None
        self.result_visible = False
        self._busy = 0
        self._generation = 0

    @property
    def loading(self) -> bool:
        """Whether the loading indicator is shown."""
        return self._busy > 0

    @contextmanager
    def _indicator(self):
        self._busy += 1
        try:
            yield
        finally:
            self._busy -= 1

    def _start_flow(self) -> int:
        self._generation += 1
        return self._generation

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _notice(self, message: str) -> None:
        self.notices.append(message)
        if self.notify is not None:
            self.notify(message)

    async def select_model(self, name_or_path: str) -> bool:
        """
        Load the named model (or a model.json path) and re-run inference on a held image.

        Returns:
            True if the model was loaded
        """
        path = self.config.resolve_model(name_or_path)
        self._start_flow()

        with self._indicator():
            await asyncio.sleep(0)
            try:
                self.loader.load(path)
            except ModelLoadError as e:
                logger.error(f"Final load error: {e}")
                self._notice(str(e))
                return False

        if self.image is not None:
            await self.predict()
        return True

    async def submit_image(self, data: bytes, mime_type: str) -> Optional[ScreeningResult]:
        """
        Accept a dropped or picked file and classify it with the held model.

        Returns:
            The published result, or None if nothing was published
        """
        try:
            check_mime_type(mime_type)
        except UnsupportedFileTypeError:
            logger.info(f"Rejected upload of type {mime_type!r}")
            self._notice(NOT_AN_IMAGE)
            return None

        self._start_flow()
        self.image = SubmittedImage(data, mime_type)
        self.result_visible = False

        if self.loader.current is None:
            self._notice(NO_MODEL)
            return None
        return await self.predict()

    async def predict(self) -> Optional[ScreeningResult]:
        """Run the held model on the held image and publish the rendered result."""
        if self.loader.current is None or self.image is None:
            return None

        generation = self._start_flow()
        with self._indicator():
            # Let the indicator render before the blocking work
            await asyncio.sleep(self.config.render_delay)
            if not self._is_current(generation):
                logger.debug("Flow superseded before inference, skipping")
                return None

            # A model switch during the delay disposes the model seen on entry
            model = self.loader.current
            image = self.image
            if model is None or image is None:
                return None
            try:
                batch = self.preprocessor.preprocess(image.data, image.mime_type)
                score = extract_score(model.predict(batch))
                result = render_result(score, self.config.threshold)
            except Exception as e:
                logger.error(f"Prediction error: {e}", exc_info=True)
                self._notice(PREDICTION_FAILED)
                return None

        if not self._is_current(generation):
            logger.debug(f"Discarding superseded result (score={score:.4f})")
            return None

        self.result = result
        self.result_visible = True
        logger.info(f"{result.label}: {result.confidence_text}")
        return result

    def close(self) -> None:
        """Release the held model."""
        self.loader.dispose()
