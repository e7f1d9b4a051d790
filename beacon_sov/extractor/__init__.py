"""
Extractor module for detecting brand mentions in AI assistant responses.

Public API:
    - DetectionResult: Mentioned/recommended flags for one brand
    - detect: Detect mentions and recommendations for all tracked brands
    - create_brand_pattern: Create word-boundary regex for brand matching
    - analyze_response: Produce mention facts for one response
    - analyze_responses: Produce mention facts for a batch, in parallel
"""

from beacon_sov.extractor.analyzer import analyze_response, analyze_responses
from beacon_sov.extractor.mention_detector import (
    DetectionResult,
    create_brand_pattern,
    detect,
)

__all__ = [
    "DetectionResult",
    "analyze_response",
    "analyze_responses",
    "create_brand_pattern",
    "detect",
]
