"""
Metrics extractor for OneiroMetrics.

Parses the body of a metrics callout, a comma or newline separated list of
``Name: value`` pairs, into a typed mapping. Problems with one pair never
prevent the remaining pairs from being read.
"""

import math
import re
from typing import Dict, Iterable, List, Optional, Tuple

from ..models import (
    Diagnostic,
    DiagnosticCode,
    MetricDefinition,
    MetricKind,
    MetricValue,
)


# A number, optionally followed by free text after whitespace ("4 (vivid)")
_NUMBER_RE = re.compile(r"^(?P<number>[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)(?:\s.*)?$")

# Values that mean "not recorded"
PLACEHOLDER_VALUES = frozenset(["-", "–", "—", "n/a", "N/A"])


def parse_number(value: str) -> Optional[float]:
    """Return the finite numeric value of a metric token, or None."""
    match = _NUMBER_RE.match(value)
    if not match:
        return None
    number = float(match.group("number"))
    # "1e999" overflows to inf
    if not math.isfinite(number):
        return None
    return number


def _format_value(value: float) -> str:
    return str(int(value)) if value.is_integer() else str(value)


class MetricsExtractor:
    """
    Extracts metric values from raw metrics callout text.
    """

    def __init__(self, definitions: Optional[Iterable[MetricDefinition]] = None):
        """
        Initialize the extractor.

        Args:
            definitions: Configured metrics used for canonical names, value
                kinds and ranges. Metrics without a definition are numeric.
        """
        self.definitions: Dict[str, MetricDefinition] = {
            definition.name.lower(): definition
            for definition in (definitions or [])
        }

    def extract(self, metrics_raw: Optional[str],
                line_numbers: Optional[List[int]] = None,
                callout_path: Optional[List[str]] = None
                ) -> Tuple[Dict[str, MetricValue], List[Diagnostic]]:
        """
        Parse metrics text.

        Args:
            metrics_raw: Newline-joined metrics lines
            line_numbers: Source line number of each line in metrics_raw
            callout_path: Callout path used in diagnostics

        Returns:
            Tuple of (metric name to value, diagnostics)
        """
        metrics: Dict[str, MetricValue] = {}
        diagnostics: List[Diagnostic] = []

        if not metrics_raw:
            return metrics, diagnostics

        for index, line in enumerate(metrics_raw.split("\n")):
            line_number = None
            if line_numbers and index < len(line_numbers):
                line_number = line_numbers[index]

            for piece in line.split(","):
                piece = piece.strip()
                if not piece:
                    continue
                parsed = self._parse_pair(piece, line_number, callout_path, diagnostics)
                if parsed is None:
                    continue

                name, value = parsed
                if name in metrics:
                    diagnostics.append(Diagnostic.info(
                        DiagnosticCode.DUPLICATE_METRIC,
                        f"Metric '{name}' appears more than once; the last value is used",
                        line_number=line_number,
                        callout_path=callout_path,
                    ))
                metrics[name] = value

        return metrics, diagnostics

    def _parse_pair(self, piece: str, line_number: Optional[int],
                    callout_path: Optional[List[str]],
                    diagnostics: List[Diagnostic]) -> Optional[Tuple[str, MetricValue]]:
        raw_name, sep, raw_value = piece.partition(":")
        name = raw_name.strip()
        value = raw_value.strip()

        if not sep or not name:
            diagnostics.append(Diagnostic.warning(
                DiagnosticCode.UNPARSABLE_METRIC,
                f"Could not read a 'Name: value' pair from '{piece}'",
                line_number=line_number,
                callout_path=callout_path,
            ))
            return None

        if not value or value in PLACEHOLDER_VALUES:
            return None

        definition = self.definitions.get(name.lower())
        if definition is not None:
            if not definition.enabled:
                return None
            name = definition.name

        if definition is not None and definition.kind == MetricKind.ENUM:
            return name, self._enum_value(definition, value, line_number, callout_path, diagnostics)

        number = parse_number(value)
        if number is None:
            diagnostics.append(Diagnostic.warning(
                DiagnosticCode.UNPARSABLE_METRIC,
                f"Metric '{name}' has a non-numeric value '{value}'",
                line_number=line_number,
                callout_path=callout_path,
            ))
            return None

        if definition is not None and not definition.in_range(number):
            diagnostics.append(Diagnostic.warning(
                DiagnosticCode.METRIC_OUT_OF_RANGE,
                f"Metric '{name}' value {_format_value(number)} is outside "
                f"{definition.min_value}..{definition.max_value}",
                line_number=line_number,
                callout_path=callout_path,
            ))

        return name, number

    @staticmethod
    def _enum_value(definition: MetricDefinition, value: str,
                    line_number: Optional[int], callout_path: Optional[List[str]],
                    diagnostics: List[Diagnostic]) -> str:
        if not definition.options:
            return value

        for option in definition.options:
            if option.lower() == value.lower():
                return option

        diagnostics.append(Diagnostic.warning(
            DiagnosticCode.INVALID_METRIC_OPTION,
            f"Metric '{definition.name}' value '{value}' is not one of: "
            f"{', '.join(definition.options)}",
            line_number=line_number,
            callout_path=callout_path,
        ))
        return value
