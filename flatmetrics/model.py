"""Data structures for metric family snapshots."""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class MetricType(str, Enum):
    """Kind of a metric family."""
    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"
    SUMMARY = "summary"
    UNTYPED = "untyped"


@dataclass
class LabelPair:
    """A label name/value annotation on a series."""
    name: str
    value: str


@dataclass
class Distribution:
    """Count and sum of a histogram or summary series. Buckets are not kept."""
    sample_count: int
    sample_sum: float


@dataclass
class Metric:
    """A single series within a family.

    Counters, gauges and untyped series carry ``value``; histograms and
    summaries carry ``distribution``.
    """
    labels: List[LabelPair] = field(default_factory=list)
    value: Optional[float] = None
    distribution: Optional[Distribution] = None

    def label_values(self) -> List[str]:
        """Label values in declaration order."""
        return [label.value for label in self.labels]


@dataclass
class MetricFamily:
    """All series sharing a name and a type."""
    name: str
    type: MetricType
    metrics: List[Metric] = field(default_factory=list)
