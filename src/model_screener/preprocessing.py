"""Image preprocessing utilities for classifier input."""

import io
import logging
import mimetypes
from pathlib import Path
from typing import Optional, Union

import numpy as np
from PIL import Image
from pydantic import Field
from pydantic.dataclasses import dataclass

from model_screener.exceptions import UnsupportedFileTypeError

logger = logging.getLogger(__name__)

__all__ = ['ImagePreprocessor', 'check_mime_type', 'guess_mime_type']

ImageSource = Union[str, Path, bytes]


def check_mime_type(mime_type: Optional[str]) -> None:
    """Reject anything whose MIME type does not start with ``image/``."""
    if not mime_type or not mime_type.startswith("image/"):
        raise UnsupportedFileTypeError(mime_type or "")


def guess_mime_type(path: Union[str, Path]) -> Optional[str]:
    """Guess a MIME type from the file name."""
    mime_type, _ = mimetypes.guess_type(str(path))
    return mime_type


@dataclass
class ImagePreprocessor:
    """Turns an image into a (1, S, S, 3) float32 batch in [0, 1]."""

    target_size: int = Field(default=128, ge=16, le=1024)

    def load_image(self, source: ImageSource) -> Image.Image:
        """
        Load an image from disk or memory and convert to RGB.

        Args:
            source: Path to the image file, or its raw bytes

        Returns:
            RGB PIL image
        """
        if isinstance(source, (str, Path)):
            path = Path(source)
            if not path.exists():
                raise FileNotFoundError(f"Image not found: {source}")
            logger.debug(f"Loading image: {source}")
            data = path.read_bytes()
        else:
            data = source

        try:
            img = Image.open(io.BytesIO(data))
            img.load()
        except Exception as e:
            raise ValueError(f"Failed to load image: {e}")

        if img.mode != "RGB":
            logger.debug(f"Converting image from {img.mode} to RGB")
            img = img.convert("RGB")
        return img

    def to_tensor(self, image: Image.Image) -> np.ndarray:
        """
        Resize (nearest neighbour, no aspect preservation), scale and batch.

        Args:
            image: RGB PIL image

        Returns:
            Array of shape (1, target_size, target_size, 3), float32 in [0, 1]
        """
        size = (self.target_size, self.target_size)
        resized = image.resize(size, Image.Resampling.NEAREST)
        pixels = np.asarray(resized, dtype=np.float32) / 255.0
        batched = np.expand_dims(pixels, axis=0)

        logger.debug(f"Preprocessed image from {image.size} to {batched.shape}")
        return batched

    def preprocess(self, source: ImageSource, mime_type: Optional[str] = None) -> np.ndarray:
        """
        Complete preprocessing pipeline: type check, load, resize, scale, batch.

        Args:
            source: Path to the image file, or its raw bytes
            mime_type: MIME type of the upload; guessed from the path when omitted

        Returns:
            Batched classifier input
        """
        if mime_type is None and isinstance(source, (str, Path)):
            mime_type = guess_mime_type(source)
        if mime_type is not None or not isinstance(source, bytes):
            check_mime_type(mime_type)

        return self.to_tensor(self.load_image(source))
