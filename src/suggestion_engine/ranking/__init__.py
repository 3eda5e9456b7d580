"""Aggregation and ranking of provider suggestions."""

from .aggregator import RankedSuggestion, RankingConfig, SuggestionAggregator

__all__ = [
    "RankedSuggestion",
    "RankingConfig",
    "SuggestionAggregator",
]
