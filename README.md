# npdetect

`npdetect` holds pieces a node problem detector is built from: the
command-line options of the detector and of its health checker and log
counter, a registry of exporters, the configuration of custom plugin
monitors, the Stackdriver exporter's configuration, and a manager that keeps
node conditions in step with a cluster's API server through a problem
client.

It has no dependencies outside the standard library.

## Detector options

`npdetect.options.parse_options(argv, daemon_names)` turns a command line
into a `NodeProblemDetectorOptions`. `daemon_names` lists the problem
daemons; each gets a `--config.<name>` option taking comma separated paths.
When it is a mapping, its values are used as the help text of those options.
Handlers in the exporter registry whose `options` object has
`add_arguments(parser)` and `apply_arguments(namespace)` take part in the
parsing too.

```python
from npdetect.options import parse_options, OptionsError

opts = parse_options(
    ["--config.custom-plugin-monitor", "/etc/npd/plugins.json"],
    ["custom-plugin-monitor", "system-log-monitor"],
)
opts.resolve_node_name()          # --hostname-override, then $NODE_NAME, then the host name
opts.apply_deprecated_options()   # folds --system-log-monitors / --custom-plugin-monitors in
opts.validate()                   # raises OptionsError when nothing is configured
```

`apply_deprecated_options()` raises `OptionsError` when a deprecated option
and its `--config.` replacement are both given, or when the matching daemon
is not known. `validate()` also rejects an `--apiserver-override` that is not
a valid URI while the Kubernetes exporter is enabled.

Durations such as `--apiserver-wait-timeout 2m30s` are read into
`datetime.timedelta` values.

### Health checker and log counter options

`npdetect.healthchecker_options.HealthCheckerOptions` describes the
component to check (`kubelet`, `docker`, `cri` or `kube-proxy`).
`set_defaults()` uses the component's name as the service, or `containerd`
for `cri`; `validate()` raises `InvalidHealthCheckerOptions` for an
unsupported component, for repair without a service, and for a `cri`
component without a crictl or socket path.

`npdetect.logcounter_options.parse_log_counter_options(argv)` returns a
`LogCounterOptions` with the journald source, log path, lookback, delay,
pattern, revert pattern and count (1 by default).

## Custom plugin configuration

A custom plugin monitor is described by a JSON file.
`npdetect.pluginconfig.load_custom_plugin_config(path)` reads it, fills in
the defaults and validates it, raising `ConfigError` on any problem;
`config_from_dict(data)` builds a `CustomPluginConfig` from decoded JSON
without doing either, leaving that to `apply_configuration()` and
`validate()`.

```python
from npdetect.pluginconfig import load_custom_plugin_config, ConfigError

config = load_custom_plugin_config("/etc/npd/plugins.json")
print(config.plugin_global_config.timeout, [rule.path for rule in config.rules])
```

Defaults are a 5 second global timeout, a 30 second invoke interval, output
cut to 80 characters, a concurrency of 3, message based condition updates
off, the initial status not skipped, and metrics reporting on. The plugin
must be `"custom"`, a rule's own timeout may not exceed the global one,
every rule's plugin path must exist, and every permanent rule needs a
default condition.

The module also defines the values used around plugin results:
`PluginStatus` (`OK`, `NON_OK`, `UNKNOWN`), `ProblemType` (`temporary`,
`permanent`), `ConditionStatus`, `Condition`, `CustomRule` and
`PluginResult`.

`npdetect.durations.parse_duration` and `format_duration` read and write the
duration strings used in these files (`"5s"`, `"1m30s"`, `"10m0s"`).

## Exporters

Exporters register an `ExporterHandler` under a name:

```python
from npdetect.exporters import ExporterHandler, register, exporter_names, get_exporter_handler, new_exporters

register("null", ExporterHandler(create_exporter=lambda options: None))
print(exporter_names())
```

`get_exporter_handler` raises `ExporterNotFoundError` for an unknown name;
`new_exporters()` calls every handler's `create_exporter` with its `options`
and drops those that return `None`. `ExporterRegistry` offers the same
operations on a registry of your own.

The Stackdriver exporter's settings live in
`npdetect.stackdriver.StackdriverExporterConfig`, read with
`load_stackdriver_config(path)`. `apply_configuration()` fills in a `1m0s`
export period, a `10m0s` metadata fetch timeout, a `10s` fetch interval and
the `monitoring.googleapis.com:443` endpoint. `GceMetadata.has_missing_field()`
tells whether any instance field is still empty.

## Node conditions

`npdetect.conditions.ConditionManager` collects condition updates with
`update_condition()` and decides when to push them through a problem client:
when a condition changed (`need_updates()`), when a failed push is due for a
retry after ten seconds (`need_resync()`), or when the heartbeat period has
passed (`need_heartbeat()`). `sync()` sends all conditions; `start(stop)`
runs these checks once a second in a daemon thread until the
`threading.Event` is set. The clock is a callable, so tests can drive time.

`FakeProblemClient` keeps conditions in memory, can be told to fail with
`inject_error("set_conditions", error)`, and checks its contents with
`assert_conditions(expected)`. `generate_patch(conditions)` produces the
`{"status":{"conditions":[...]}}` document sent for a list of conditions.

## What this package does not do

- It installs no commands; the option parsers are called from your own code.
- It does not run plugins, and it does not turn plugin results into events
  or condition changes: it only loads and checks their configuration.
- It has no client for a real API server; `FakeProblemClient` is the only
  problem client, and any object with `set_conditions(conditions)` can stand
  in for one.
- It serves no HTTP endpoints and sends no metrics to Prometheus or
  Stackdriver, nor does it query GCE metadata.