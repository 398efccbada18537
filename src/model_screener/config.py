"""Deployment configuration: models on offer, decision threshold, input size."""

import json
import logging
from pathlib import Path
from typing import List, Union

from pydantic import Field, field_validator
from pydantic.dataclasses import dataclass

logger = logging.getLogger(__name__)

__all__ = ['ModelChoice', 'ScreenerConfig', 'DEFAULT', 'LEGACY']


@dataclass
class ModelChoice:
    """A named model.json path offered to the user."""

    name: str = Field(min_length=1)
    path: str = Field(min_length=1)


@dataclass
class ScreenerConfig:
    """Screener settings. Threshold and input size vary between deployments."""

    image_size: int = Field(default=128, ge=16, le=1024)
    threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    render_delay: float = Field(default=0.1, ge=0.0)
    models: List[ModelChoice] = Field(default_factory=list)

    @field_validator("models")
    @classmethod
    def validate_unique_names(cls, v: List[ModelChoice]) -> List[ModelChoice]:
        """Model names are used for lookup and must not repeat."""
        names = [choice.name for choice in v]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate model names: {', '.join(duplicates)}")
        return v

    def resolve_model(self, name_or_path: str) -> str:
        """Return the path of the named model, or the argument itself if no name matches."""
        for choice in self.models:
            if choice.name == name_or_path:
                return choice.path
        return name_or_path

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ScreenerConfig":
        """
        Load settings from a JSON file.

        Args:
            path: JSON file with any of image_size, threshold, render_delay and
                models (a list of {"name", "path"} objects)

        Returns:
            Validated ScreenerConfig
        """
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        try:
            data = json.loads(config_path.read_text())
        except json.JSONDecodeError as e:
            raise ValueError(f"Config file {path} is not valid JSON: {e}")
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must hold a JSON object")

        logger.debug(f"Loaded config from {path}")
        return cls(**data)


# Two deployments of the tool disagree on these values
DEFAULT = ScreenerConfig(image_size=128, threshold=0.7)
LEGACY = ScreenerConfig(image_size=224, threshold=0.5)
