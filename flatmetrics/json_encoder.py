"""Flat JSON encoder for metric family snapshots.

Converts ``metric{dimensions,...} -> value`` into a flat dotted key with a
value, e.g. ``requests{method="GET", service="accounts"} 8`` becomes
``"requests.GET.accounts": 8.0``. Label names, timestamps, histogram buckets
and help text are dropped.
"""
import errno
import io
import json
import logging
import math
from enum import Enum
from typing import BinaryIO, Dict, Iterable, Optional

from flatmetrics.model import Distribution, Metric, MetricFamily, MetricType

logger = logging.getLogger(__name__)

JSON_FORMAT = "application/json"


class NonFinitePolicy(str, Enum):
    """What to do with NaN and infinite values, which JSON cannot express."""
    NULL = "null"
    OMIT = "omit"
    ZERO = "zero"
    ERROR = "error"


class FlatMetricsError(Exception):
    """Base class for encoder errors."""


class NonFiniteValueError(FlatMetricsError):
    """Raised for a NaN or infinite value under ``NonFinitePolicy.ERROR``."""

    def __init__(self, key: str, value: float):
        self.key = key
        self.value = value
        super().__init__(f"Non-finite value {value!r} for key '{key}'")


def flatten_metric_key(name: str, metric: Metric) -> str:
    """Append the non-empty label values of ``metric`` to ``name``, dot-separated."""
    if not metric.labels:
        return name

    values = ".".join(v for v in metric.label_values() if v != "")
    if values:
        return f"{name}.{values}"
    return name


def _scalar(metric: Metric) -> float:
    # A series without a payload reads as zero
    return float(metric.value) if metric.value is not None else 0.0


def flatten_families(
    families: Iterable[MetricFamily],
    non_finite: NonFinitePolicy = NonFinitePolicy.NULL
) -> Dict[str, Optional[float]]:
    """
    Build the flat key -> value map for a snapshot.

    Args:
        families: Metric families in snapshot order
        non_finite: Policy for NaN and infinite values

    Returns:
        Mapping of flattened key to value. When two series flatten to the
        same key, the one seen last wins.
    """
    export_me: Dict[str, Optional[float]] = {}

    def put(key: str, value: float):
        if math.isfinite(value):
            export_me[key] = value
        elif non_finite == NonFinitePolicy.NULL:
            export_me[key] = None
        elif non_finite == NonFinitePolicy.ZERO:
            export_me[key] = 0.0
        elif non_finite == NonFinitePolicy.ERROR:
            raise NonFiniteValueError(key, value)
        else:
            logger.debug(f"Omitting non-finite value for {key}")

    for mf in families:
        name = mf.name

        for m in mf.metrics:
            if mf.type == MetricType.COUNTER:
                put(flatten_metric_key(name, m), _scalar(m))

            elif mf.type == MetricType.GAUGE:
                put(flatten_metric_key(name, m), _scalar(m))

            elif mf.type == MetricType.HISTOGRAM:
                # Only the count and sum are exported
                h = m.distribution or Distribution(sample_count=0, sample_sum=0.0)
                put(flatten_metric_key(f"{name}_count", m), float(h.sample_count))
                put(flatten_metric_key(f"{name}_sum", m), float(h.sample_sum))

            else:
                logger.debug(f"Skipping {mf.type.value} family {name}")
                break

    return export_me


class JsonEncoder:
    """Encodes metric families as one flat JSON object."""

    def __init__(self, non_finite: NonFinitePolicy = NonFinitePolicy.NULL):
        self.non_finite = NonFinitePolicy(non_finite)

    def format_type(self) -> str:
        """Content type of the encoded document."""
        return JSON_FORMAT

    def encode(self, families: Iterable[MetricFamily], sink: BinaryIO) -> int:
        """Serialize ``families`` and write the whole document to ``sink``.

        Returns the number of keys written. Errors raised by ``sink.write``
        propagate to the caller unchanged.
        """
        export_me = flatten_families(families, self.non_finite)
        data = json.dumps(export_me, separators=(",", ":"), allow_nan=False).encode("utf-8")
        _write_all(sink, data)
        return len(export_me)

    def encode_to_bytes(self, families: Iterable[MetricFamily]) -> bytes:
        """Encode into an in-memory buffer and return its contents."""
        buf = io.BytesIO()
        self.encode(families, buf)
        return buf.getvalue()


def _write_all(sink: BinaryIO, data: bytes):
    """Write ``data`` in full, retrying after short writes on raw streams."""
    view = memoryview(data)
    while view:
        written = sink.write(view)
        if written is None:
            # Non-blocking raw stream that would block
            raise BlockingIOError(errno.EAGAIN, "Sink would block", len(data) - len(view))
        if written == 0:
            raise OSError("Sink accepted no bytes")
        view = view[written:]
