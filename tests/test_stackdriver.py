import json

import pytest

from npdetect.stackdriver import (
    DEFAULT_ENDPOINT,
    GceMetadata,
    StackdriverExporterConfig,
    load_stackdriver_config,
)


def _metadata():
    return GceMetadata(
        project_id="some-gcp-project",
        zone="us-central1-a",
        instance_id="56781234",
        instance_name="some-gce-instance",
    )


@pytest.mark.parametrize(
    "endpoint, wanted",
    [
        ("monitoring.googleapis.com:443", DEFAULT_ENDPOINT),
        (
            "staging-monitoring.sandbox.googleapis.com:443",
            "staging-monitoring.sandbox.googleapis.com:443",
        ),
    ],
)
def test_apply_keeps_values(endpoint, wanted):
    config = StackdriverExporterConfig(
        export_period="60s",
        metadata_fetch_timeout="600s",
        metadata_fetch_interval="10s",
        api_endpoint=endpoint,
        gce_metadata=_metadata(),
    )
    config.apply_configuration()
    assert config == StackdriverExporterConfig(
        export_period="60s",
        metadata_fetch_timeout="600s",
        metadata_fetch_interval="10s",
        api_endpoint=wanted,
        gce_metadata=_metadata(),
    )


def test_apply_empty():
    config = StackdriverExporterConfig()
    config.apply_configuration()
    assert config == StackdriverExporterConfig(
        export_period="1m0s",
        metadata_fetch_timeout="10m0s",
        metadata_fetch_interval="10s",
        api_endpoint="monitoring.googleapis.com:443",
        gce_metadata=GceMetadata(),
    )


def test_missing_field():
    assert GceMetadata().has_missing_field() is True
    assert _metadata().has_missing_field() is False
    partial = _metadata()
    partial.zone = ""
    assert partial.has_missing_field() is True


def test_load(tmp_path):
    path = tmp_path / "sd.json"
    path.write_text(json.dumps({
        "exportPeriod": "30s",
        "gceMetadata": {"projectID": "p", "zone": "z"},
        "customMetricPrefix": "custom.googleapis.com/npd",
    }))
    config = load_stackdriver_config(path)
    assert config.export_period == "30s"
    assert config.api_endpoint == DEFAULT_ENDPOINT
    assert config.metadata_fetch_timeout == "10m0s"
    assert config.gce_metadata.project_id == "p"
    assert config.gce_metadata.zone == "z"
    assert config.custom_metric_prefix == "custom.googleapis.com/npd"