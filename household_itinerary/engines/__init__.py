"""Engine modules for the itinerary engine.

Contains stateless computation engines:
- rule_engine: Due rule validation and construction
- schedule_engine: Next-occurrence calculation (rrule + relativedelta)
- frequency_engine: Target-count inference from step text
- occurrence_engine: Generation planning for a goal's tracked steps
- resolver_engine: Due-day resolution, today/day/upcoming queries
- tracking_engine: Streak and progress transitions
- attention_engine: Broken-streak and behind-pace heuristics
"""

# Use relative imports within package to avoid mypy module resolution issues
from .attention_engine import AttentionEngine
from .frequency_engine import FrequencyEngine, FrequencyTarget
from .occurrence_engine import GenerationPlan, OccurrenceEngine, PlannedItem
from .resolver_engine import ResolverEngine
from .rule_engine import RuleEngine
from .schedule_engine import RecurrenceEngine, calculate_next_occurrence
from .tracking_engine import TrackingEngine

__all__ = [
    "AttentionEngine",
    "FrequencyEngine",
    "FrequencyTarget",
    "GenerationPlan",
    "OccurrenceEngine",
    "PlannedItem",
    "RecurrenceEngine",
    "ResolverEngine",
    "RuleEngine",
    "TrackingEngine",
    "calculate_next_occurrence",
]
