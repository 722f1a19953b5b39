"""AI module: data contracts, match analyzers, response normalization and artwork lookup."""

from pokiface.ai.analyzer_base import BaseMatchAnalyzer, MockMatchAnalyzer
from pokiface.ai.artwork import ArtworkResolver, slugify
from pokiface.ai.factory import get_match_analyzer
from pokiface.ai.normalizer import FALLBACK_RESULTS, normalize_response
from pokiface.ai.schema import AnalysisRequest, AnalysisResult, ModelCard, UploadedImage

__all__ = [
    "AnalysisRequest",
    "AnalysisResult",
    "ArtworkResolver",
    "BaseMatchAnalyzer",
    "FALLBACK_RESULTS",
    "MockMatchAnalyzer",
    "ModelCard",
    "UploadedImage",
    "get_match_analyzer",
    "normalize_response",
    "slugify",
]
