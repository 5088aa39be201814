"""Prometheus collector exporting Redfish properties selected by rules."""

import logging
from typing import Any, Dict, Iterator, List, Optional, Tuple

from prometheus_client.core import GaugeMetricFamily
from prometheus_client.registry import Collector

from ..config.models import CollectRule
from ..services.snapshot_cache import SnapshotCache
from ..utils.errors import ConversionFailure
from ..utils.metrics import MetricSample
from .matcher import match_path, match_pointer


NAMESPACE = "hw"


class RedfishCollector(Collector):
    """
    Collector turning cached Redfish resources into gauges.

    ``update`` runs on the poll schedule and replaces the cached snapshot.
    Scrapes (``collect``) only read the cache; they never trigger traversal.
    """

    def __init__(
        self,
        rule: CollectRule,
        client: Any,
        cache: Optional[SnapshotCache] = None,
        namespace: str = NAMESPACE,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize Redfish collector.

        Args:
            rule: Validated and compiled collection rule
            client: Traversal source (RedfishClient or FileSnapshotClient)
            cache: Snapshot cache shared with the poller
            namespace: Prefix of every metric name
            logger: Optional logger instance
        """
        self.rule = rule
        self.client = client
        self.cache = cache if cache is not None else SnapshotCache()
        self.namespace = namespace
        self.logger = (logger or logging.getLogger(__name__)).getChild(self.__class__.__name__)

    def metric_name(self, name: str) -> str:
        return f"{self.namespace}_{name}" if self.namespace else name

    async def update(self) -> None:
        """Traverse the resource tree and publish the result."""
        snapshot = await self.client.traverse(self.rule.traverse)
        self.cache.set(snapshot)
        self.logger.debug(f"Published snapshot with {len(snapshot)} resources")

    def collect_samples(self) -> List[MetricSample]:
        """
        Evaluate every metric rule against the current snapshot.

        Returns:
            List[MetricSample]: One sample per converted property match
        """
        snapshot = self.cache.get()
        samples = []

        for metric_rule in self.rule.metrics:
            for path, document in snapshot.items():
                matched, path_labels = match_path(metric_rule.path, path)
                if not matched:
                    continue

                for property_rule in metric_rule.properties:
                    for prop in match_pointer(property_rule.pointer, document):
                        try:
                            value = property_rule.kind.convert(prop.value)
                        except ConversionFailure as e:
                            self.logger.warning(
                                f"failed to convert {property_rule.name}: {e}",
                                extra={
                                    "path": path,
                                    "pointer": property_rule.pointer,
                                    "error_type": ConversionFailure.__name__,
                                }
                            )
                            continue

                        labels = dict(path_labels)
                        for index_name, index in prop.indexes.items():
                            labels[index_name] = str(index)

                        samples.append(MetricSample(
                            name=self.metric_name(property_rule.name),
                            value=value,
                            labels=labels,
                            description=property_rule.description,
                        ))

        return samples

    def describe(self) -> Iterator[GaugeMetricFamily]:
        """Yield one empty gauge family per metric name declared by the rules."""
        for name, (description, label_names) in self._declared_metrics().items():
            yield GaugeMetricFamily(name, description, labels=label_names)

    def collect(self) -> Iterator[GaugeMetricFamily]:
        declared = self._declared_metrics()
        families = {
            name: GaugeMetricFamily(name, description, labels=label_names)
            for name, (description, label_names) in declared.items()
        }

        for sample in self.collect_samples():
            label_names = declared[sample.name][1]
            if set(label_names) != set(sample.labels):
                self.logger.warning(
                    f"label set of {sample.name} differs between rules",
                    extra={"expected": label_names, "actual": sorted(sample.labels)}
                )
                continue
            families[sample.name].add_metric([sample.labels[n] for n in label_names], sample.value)

        yield from families.values()

    def _declared_metrics(self) -> Dict[str, Tuple[str, List[str]]]:
        """Metric name -> (help, label names); the first declaring rule wins."""
        declared: Dict[str, Tuple[str, List[str]]] = {}
        for metric_rule in self.rule.metrics:
            for property_rule in metric_rule.properties:
                name = self.metric_name(property_rule.name)
                if name not in declared:
                    declared[name] = (
                        property_rule.description,
                        metric_rule.path_labels() + property_rule.index_labels(),
                    )
        return declared
