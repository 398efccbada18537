"""Model Screener - AI vs. real image classification with layers-model classifiers"""

__version__ = "0.1.0"

from .config import ModelChoice, ScreenerConfig
from .loader import ModelLoader
from .preprocessing import ImagePreprocessor
from .result import ScreeningResult, render_result
from .session import ScreenerSession
from .topology_patcher import patch_topology

__all__ = [
    "ImagePreprocessor",
    "ModelChoice",
    "ModelLoader",
    "ScreenerConfig",
    "ScreenerSession",
    "ScreeningResult",
    "patch_topology",
    "render_result",
]
