"""Options, plugin configuration, exporter registry and condition sync for node problem detection."""

__version__ = "0.1.0"

__all__ = [
    "conditions",
    "durations",
    "exporters",
    "healthchecker_options",
    "logcounter_options",
    "options",
    "pluginconfig",
    "stackdriver",
]