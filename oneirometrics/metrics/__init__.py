"""Metric aggregation across journal entries."""

from .aggregator import WORD_COUNT_METRIC, round_half_up, summarize

__all__ = ["WORD_COUNT_METRIC", "round_half_up", "summarize"]
