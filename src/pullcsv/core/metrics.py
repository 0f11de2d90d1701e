"""
pullcsv metrics.

The sync and retention jobs only see the flat ``MetricsSink`` interface.
``PrometheusMetrics`` backs it with gauges labelled by destination path,
stand and pod, served over HTTP by ``prometheus_client``.
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol

from prometheus_client import CollectorRegistry, Gauge, start_http_server

from pullcsv.core.logging import get_logger

logger = get_logger(__name__)


class Metric(Enum):
    """Gauges reported per destination path."""

    OLDEST_FILE_MTIME = "folder_sentry_max_modified_file_lifetime"
    NEWEST_FILE_MTIME = "folder_sentry_min_modified_file_lifetime"
    FILE_COUNT = "folder_sentry_file_count"
    PULL_START_TIME = "rsync_download_csv_start_time"
    PULL_STOP_TIME = "rsync_download_csv_stop_time"
    PULL_EXIT_CODE = "rsync_download_csv_exit_code"
    PUSH_START_TIME = "rsync_upload_exclude_file_start_time"
    PUSH_STOP_TIME = "rsync_upload_exclude_file_stop_time"
    PUSH_EXIT_CODE = "rsync_upload_exclude_file_exit_code"


_DESCRIPTIONS = {
    Metric.OLDEST_FILE_MTIME: "Unix time of the oldest file in DOWNLOAD_TO folder.",
    Metric.NEWEST_FILE_MTIME: "Unix time of the newest file in DOWNLOAD_TO folder.",
    Metric.FILE_COUNT: "How many files in DOWNLOAD_TO folder.",
    Metric.PULL_START_TIME: "Rsync start time (pulling CSV files).",
    Metric.PULL_STOP_TIME: "Rsync stop time (pulling CSV files).",
    Metric.PULL_EXIT_CODE: "Rsync exit code (pulling CSV files).",
    Metric.PUSH_START_TIME: "Rsync start time (uploading exclude file).",
    Metric.PUSH_STOP_TIME: "Rsync stop time (uploading exclude file).",
    Metric.PUSH_EXIT_CODE: "Rsync exit code (uploading exclude file).",
}


class MetricsSink(Protocol):
    """Write-only gauge interface used by the jobs."""

    def set(self, metric: Metric, path: str, value: float) -> None:
        ...


class NullMetrics:
    """Sink that drops every value."""

    def set(self, metric: Metric, path: str, value: float) -> None:
        return None


class PrometheusMetrics:
    """Prometheus gauges for every ``Metric``, on a private registry."""

    def __init__(
        self,
        stand_name: str,
        pod_name: str,
        namespace: str = "pullcsv",
        registry: CollectorRegistry | None = None,
    ) -> None:
        self.stand_name = stand_name
        self.pod_name = pod_name
        self.registry = registry or CollectorRegistry()
        self._gauges: dict[Metric, Gauge] = {
            metric: Gauge(
                metric.value,
                _DESCRIPTIONS[metric],
                ["path", "stand_name", "pod_name"],
                namespace=namespace,
                registry=self.registry,
            )
            for metric in Metric
        }
        self._info = Gauge(
            "info",
            "Information about the pullcsv's version.",
            ["version", "stand_name", "pod_name"],
            namespace=namespace,
            registry=self.registry,
        )

    def set(self, metric: Metric, path: str, value: float) -> None:
        self._gauges[metric].labels(
            path=path, stand_name=self.stand_name, pod_name=self.pod_name
        ).set(value)

    def set_info(self, version: str) -> None:
        self._info.labels(
            version=version, stand_name=self.stand_name, pod_name=self.pod_name
        ).set(1)

    def serve(self, port: int) -> None:
        """Expose ``/metrics`` over HTTP on a background thread."""
        start_http_server(port, registry=self.registry)
        logger.info("Starting HTTP server", port=port)
