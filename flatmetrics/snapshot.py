"""Snapshot of a prometheus_client registry as metric families."""
from typing import Dict, Iterable, List, Tuple
import logging

from prometheus_client import CollectorRegistry
from prometheus_client.metrics_core import Metric as PromMetric

from flatmetrics.model import Distribution, LabelPair, Metric, MetricFamily, MetricType

logger = logging.getLogger(__name__)

_TYPE_MAP = {
    "counter": MetricType.COUNTER,
    "gauge": MetricType.GAUGE,
    "histogram": MetricType.HISTOGRAM,
    "summary": MetricType.SUMMARY,
}


def _family_type(type_name: str) -> MetricType:
    return _TYPE_MAP.get(type_name, MetricType.UNTYPED)


def families_from_samples(metrics: Iterable[PromMetric]) -> List[MetricFamily]:
    """
    Group the flat sample rows of each collected metric back into series.

    Args:
        metrics: Metric families as yielded by ``CollectorRegistry.collect()``

    Returns:
        One MetricFamily per collected metric, series in first-seen order
    """
    families = []

    for pm in metrics:
        metric_type = _family_type(pm.type)
        series: Dict[Tuple[Tuple[str, str], ...], Metric] = {}

        for sample in pm.samples:
            if not sample.name.startswith(pm.name):
                continue
            suffix = sample.name[len(pm.name):]

            # Bucket and quantile rows are skipped below, so every remaining
            # label was declared on the metric
            labels = list(sample.labels.items())
            series_key = tuple(labels)

            if metric_type in (MetricType.HISTOGRAM, MetricType.SUMMARY):
                if suffix not in ("_count", "_sum"):
                    continue
                metric = series.get(series_key)
                if metric is None:
                    metric = Metric(
                        labels=[LabelPair(k, v) for k, v in labels],
                        distribution=Distribution(sample_count=0, sample_sum=0.0)
                    )
                    series[series_key] = metric
                if suffix == "_count":
                    metric.distribution.sample_count = int(sample.value)
                else:
                    metric.distribution.sample_sum = float(sample.value)

            elif metric_type == MetricType.COUNTER:
                # _created rows carry a timestamp, not a count
                if suffix not in ("_total", ""):
                    continue
                series[series_key] = Metric(
                    labels=[LabelPair(k, v) for k, v in labels],
                    value=float(sample.value)
                )

            else:
                if suffix != "":
                    continue
                series[series_key] = Metric(
                    labels=[LabelPair(k, v) for k, v in labels],
                    value=float(sample.value)
                )

        families.append(MetricFamily(pm.name, metric_type, list(series.values())))

    return families


def collect_families(registry: CollectorRegistry) -> List[MetricFamily]:
    """Take one snapshot of ``registry``."""
    families = families_from_samples(registry.collect())
    logger.debug(f"Collected {len(families)} metric families")
    return families
