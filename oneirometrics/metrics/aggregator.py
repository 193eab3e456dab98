"""
Metrics aggregator for OneiroMetrics.

A pure reduction over dream entries. Numeric values contribute to min, max
and average; enumerated values are only counted, so callers can tell a
metric with no numeric data from one whose values are all zero.
"""

import math
from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Dict, Iterable, List

from ..models import DreamEntry, MetricSummary, MetricValue


AVERAGE_PLACES = Decimal("0.001")

WORD_COUNT_METRIC = "Words"


def round_half_up(value: Decimal) -> float:
    """Round to three decimal places, halves away from zero."""
    if not value.is_finite():
        return float(value)
    with localcontext() as context:
        # quantize needs room for every integer digit plus three places
        context.prec = max(context.prec, value.adjusted() + 4)
        return float(value.quantize(AVERAGE_PLACES, rounding=ROUND_HALF_UP))


class _Accumulator:

    def __init__(self, name: str):
        self.name = name
        self.numbers: List[float] = []
        self.value_counts: Dict[str, int] = {}

    def add(self, value: MetricValue) -> None:
        if isinstance(value, str):
            self.value_counts[value] = self.value_counts.get(value, 0) + 1
        else:
            self.numbers.append(float(value))

    def summary(self) -> MetricSummary:
        non_numeric = sum(self.value_counts.values())
        average = None
        if self.numbers and not all(math.isfinite(number) for number in self.numbers):
            # Entries built by callers may hold inf or nan
            average = sum(self.numbers) / len(self.numbers)
        elif self.numbers:
            total = sum(Decimal(repr(number)) for number in self.numbers)
            average = round_half_up(total / len(self.numbers))

        return MetricSummary(
            metric_name=self.name,
            average=average,
            min=min(self.numbers) if self.numbers else None,
            max=max(self.numbers) if self.numbers else None,
            count=len(self.numbers) + non_numeric,
            numeric_count=len(self.numbers),
            non_numeric_count=non_numeric,
            value_counts=dict(self.value_counts),
        )


def summarize(entries: Iterable[DreamEntry], include_word_count: bool = False) -> List[MetricSummary]:
    """
    Summarize every metric found across entries.

    Args:
        entries: Dream entries in any order
        include_word_count: Also summarize entry word counts as a 'Words' metric

    Returns:
        One MetricSummary per distinct metric name, in order of first
        appearance, followed by the word count summary when requested
    """
    accumulators: Dict[str, _Accumulator] = {}
    words = _Accumulator(WORD_COUNT_METRIC)

    for entry in entries:
        for name, value in entry.metrics.items():
            if name not in accumulators:
                accumulators[name] = _Accumulator(name)
            accumulators[name].add(value)
        words.add(float(entry.word_count))

    summaries = [accumulator.summary() for accumulator in accumulators.values()]
    if include_word_count and words.numbers:
        summaries.append(words.summary())
    return summaries
