"""Services for aggregation domain."""

from .confidence_calculator import ConfidenceCalculator
from .conflict_resolver import ConflictDetector, ConflictResolver
from .consensus_calculator import ConsensusCalculator
from .outlier_detector import OutlierDetector
from .quality_validator import QualityValidator
from .score_aggregator import ScoreAggregator
from .score_collector import ScoreCollector
from .weighting_engine import WeightingEngine

__all__ = [
    "ScoreCollector",
    "WeightingEngine",
    "OutlierDetector",
    "ScoreAggregator",
    "ConsensusCalculator",
    "ConflictDetector",
    "ConflictResolver",
    "ConfidenceCalculator",
    "QualityValidator",
]
