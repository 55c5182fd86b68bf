"""Configuration of the Stackdriver metrics exporter."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import timedelta
from os import PathLike

from npdetect.durations import format_duration

DEFAULT_EXPORT_PERIOD = format_duration(timedelta(seconds=60))
DEFAULT_ENDPOINT = "monitoring.googleapis.com:443"
DEFAULT_METADATA_FETCH_TIMEOUT = format_duration(timedelta(seconds=600))
DEFAULT_METADATA_FETCH_INTERVAL = format_duration(timedelta(seconds=10))


@dataclass
class GceMetadata:
    """Identity of the GCE instance the metrics belong to."""

    project_id: str = ""
    zone: str = ""
    instance_id: str = ""
    instance_name: str = ""

    def has_missing_field(self) -> bool:
        """Return True when any identifying field is empty."""
        return not all(
            (self.project_id, self.zone, self.instance_id, self.instance_name)
        )


@dataclass
class StackdriverExporterConfig:
    """Settings read from the exporter's JSON configuration file."""

    export_period: str = ""
    api_endpoint: str = ""
    gce_metadata: GceMetadata = field(default_factory=GceMetadata)
    metadata_fetch_timeout: str = ""
    metadata_fetch_interval: str = ""
    panic_on_metadata_fetch_failure: bool = False
    custom_metric_prefix: str = ""

    def apply_configuration(self) -> None:
        """Fill empty fields with their defaults."""
        self.export_period = self.export_period or DEFAULT_EXPORT_PERIOD
        self.metadata_fetch_timeout = (
            self.metadata_fetch_timeout or DEFAULT_METADATA_FETCH_TIMEOUT
        )
        self.metadata_fetch_interval = (
            self.metadata_fetch_interval or DEFAULT_METADATA_FETCH_INTERVAL
        )
        self.api_endpoint = self.api_endpoint or DEFAULT_ENDPOINT


def load_stackdriver_config(path: str | PathLike[str]) -> StackdriverExporterConfig:
    """Read a configuration file and apply defaults."""
    with open(path, encoding="utf-8") as handle:
        data = json.load(handle)
    metadata = data.get("gceMetadata") or {}
    config = StackdriverExporterConfig(
        export_period=data.get("exportPeriod", ""),
        api_endpoint=data.get("apiEndpoint", ""),
        gce_metadata=GceMetadata(
            project_id=metadata.get("projectID", ""),
            zone=metadata.get("zone", ""),
            instance_id=metadata.get("instanceID", ""),
            instance_name=metadata.get("instanceName", ""),
        ),
        metadata_fetch_timeout=data.get("metadataFetchTimeout", ""),
        metadata_fetch_interval=data.get("metadataFetchInterval", ""),
        panic_on_metadata_fetch_failure=bool(
            data.get("panicOnMetadataFetchFailure", False)
        ),
        custom_metric_prefix=data.get("customMetricPrefix", ""),
    )
    config.apply_configuration()
    return config