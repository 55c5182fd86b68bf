import socket
from datetime import timedelta

import pytest

from npdetect.exporters import ExporterHandler, register
from npdetect.options import (
    CUSTOM_PLUGIN_MONITOR_NAME,
    SYSTEM_LOG_MONITOR_NAME,
    NodeProblemDetectorOptions,
    OptionsError,
    parse_options,
)


def _foo_map():
    return {"foo-monitor": ["config-a", "config-b"]}


# --- resolve_node_name ------------------------------------------------------

@pytest.mark.parametrize(
    "env_node_name, override, wanted",
    [
        ("node-name-env", "hostname-override", "hostname-override"),
        ("node-name-env", "", "node-name-env"),
        ("", "", None),
    ],
    ids=["override only", "override and env", "override env and hostname"],
)
def test_resolve_node_name(monkeypatch, env_node_name, override, wanted):
    monkeypatch.delenv("NODE_NAME", raising=False)
    if env_node_name:
        monkeypatch.setenv("NODE_NAME", env_node_name)
    if wanted is None:
        wanted = socket.gethostname()
    opts = NodeProblemDetectorOptions(hostname_override=override)
    assert opts.resolve_node_name() == wanted
    assert opts.node_name == wanted


# --- validate ---------------------------------------------------------------

VALIDATE_CASES = [
    ("default k8s exporter config",
     dict(monitor_config_paths=_foo_map()), False),
    ("k8s exporter disabled with invalid override",
     dict(enable_k8s_exporter=False, apiserver_override=":foo",
          monitor_config_paths=_foo_map()), False),
    ("enables k8s exporter config",
     dict(apiserver_override="", enable_k8s_exporter=True,
          monitor_config_paths=_foo_map()), False),
    ("valid ApiServerOverride",
     dict(apiserver_override="127.0.0.1", enable_k8s_exporter=True,
          monitor_config_paths=_foo_map()), False),
    ("invalid ApiServerOverride",
     dict(apiserver_override=":foo", enable_k8s_exporter=True,
          monitor_config_paths=_foo_map()), True),
    ("non-empty MonitorConfigPaths",
     dict(monitor_config_paths=_foo_map()), False),
    ("empty MonitorConfigPaths",
     dict(monitor_config_paths={}), True),
    ("un-initialized MonitorConfigPaths",
     dict(monitor_config_paths=None), True),
    ("deprecated SystemLogMonitor with new paths",
     dict(system_log_monitor_config_paths=["config-a"],
          monitor_config_paths=_foo_map()), True),
    ("deprecated CustomPluginMonitor with new paths",
     dict(custom_plugin_monitor_config_paths=["config-a"],
          monitor_config_paths=_foo_map()), True),
    ("deprecated SystemLogMonitor with empty paths",
     dict(system_log_monitor_config_paths=["config-a"], monitor_config_paths={}), True),
    ("deprecated SystemLogMonitor with un-initialized paths",
     dict(system_log_monitor_config_paths=["config-a"], monitor_config_paths=None), True),
    ("deprecated CustomPluginMonitor with empty paths",
     dict(custom_plugin_monitor_config_paths=["config-b"], monitor_config_paths={}), True),
    ("deprecated CustomPluginMonitor with un-initialized paths",
     dict(custom_plugin_monitor_config_paths=["config-b"], monitor_config_paths=None), True),
]


@pytest.mark.parametrize("name, kwargs, expect_error", VALIDATE_CASES,
                         ids=[case[0] for case in VALIDATE_CASES])
def test_validate(name, kwargs, expect_error):
    opts = NodeProblemDetectorOptions(**kwargs)
    if expect_error:
        with pytest.raises(OptionsError):
            opts.validate()
    else:
        assert opts.validate() is None


@pytest.mark.parametrize("url", ["1:foo", "http://host:port", "http://[::1", "a%zz"])
def test_validate_rejects_malformed_urls(url):
    opts = NodeProblemDetectorOptions(apiserver_override=url,
                                      monitor_config_paths=_foo_map())
    with pytest.raises(OptionsError, match="not a valid HTTP URI"):
        opts.validate()


@pytest.mark.parametrize("url", ["https://10.0.0.1:443?inClusterConfig=false",
                                 "http://[::1]:8080/path", "localhost"])
def test_validate_accepts_wellformed_urls(url):
    opts = NodeProblemDetectorOptions(apiserver_override=url,
                                      monitor_config_paths=_foo_map())
    assert opts.validate() is None


# --- apply_deprecated_options -----------------------------------------------

SLM = SYSTEM_LOG_MONITOR_NAME
CPM = CUSTOM_PLUGIN_MONITOR_NAME

DEPRECATED_OK_CASES = [
    ("no deprecated options",
     dict(monitor_config_paths={SLM: ["config-a", "config-b"], CPM: ["config-c", "config-d"]}),
     {SLM: ["config-a", "config-b"], CPM: ["config-c", "config-d"]}),
    ("correctly using deprecated options",
     dict(system_log_monitor_config_paths=["config-a", "config-b"],
          custom_plugin_monitor_config_paths=["config-c", "config-d"],
          monitor_config_paths={CPM: [], SLM: []}),
     {SLM: ["config-a", "config-b"], CPM: ["config-c", "config-d"]}),
    ("deprecated SystemLogMonitor and new CustomPluginMonitor",
     dict(system_log_monitor_config_paths=["config-a", "config-b"],
          monitor_config_paths={CPM: ["config-c", "config-d"], SLM: []}),
     {SLM: ["config-a", "config-b"], CPM: ["config-c", "config-d"]}),
    ("deprecated CustomPluginMonitor and new SystemLogMonitor",
     dict(custom_plugin_monitor_config_paths=["config-a", "config-b"],
          monitor_config_paths={CPM: [], SLM: ["config-c", "config-d"]}),
     {SLM: ["config-c", "config-d"], CPM: ["config-a", "config-b"]}),
]


@pytest.mark.parametrize("name, kwargs, wanted", DEPRECATED_OK_CASES,
                         ids=[case[0] for case in DEPRECATED_OK_CASES])
def test_apply_deprecated_options(name, kwargs, wanted):
    opts = NodeProblemDetectorOptions(**kwargs)
    opts.apply_deprecated_options()
    assert opts.monitor_config_paths == wanted
    assert opts.system_log_monitor_config_paths == []
    assert opts.custom_plugin_monitor_config_paths == []


DEPRECATED_ERROR_CASES = [
    ("deprecated & new options on SystemLogMonitor",
     dict(system_log_monitor_config_paths=["config-a"],
          monitor_config_paths={SLM: ["config-b"]})),
    ("deprecated & new options on CustomPluginMonitor",
     dict(custom_plugin_monitor_config_paths=["config-a"],
          monitor_config_paths={CPM: ["config-b"]})),
    ("SystemLogMonitor not registered",
     dict(system_log_monitor_config_paths=["config-a"],
          custom_plugin_monitor_config_paths=["config-b"],
          monitor_config_paths={CPM: []})),
    ("CustomPluginMonitor not registered",
     dict(system_log_monitor_config_paths=["config-a"],
          custom_plugin_monitor_config_paths=["config-b"],
          monitor_config_paths={SLM: []})),
]


@pytest.mark.parametrize("name, kwargs", DEPRECATED_ERROR_CASES,
                         ids=[case[0] for case in DEPRECATED_ERROR_CASES])
def test_apply_deprecated_options_errors(name, kwargs):
    opts = NodeProblemDetectorOptions(**kwargs)
    with pytest.raises(OptionsError):
        opts.apply_deprecated_options()


# --- parse_options ----------------------------------------------------------

DAEMONS = [SLM, CPM]


def test_parse_defaults():
    opts = parse_options([], DAEMONS)
    assert opts.server_port == 20256
    assert opts.prometheus_server_port == 20257
    assert opts.server_address == "127.0.0.1"
    assert opts.enable_k8s_exporter is True
    assert opts.apiserver_wait_timeout == timedelta(minutes=5)
    assert opts.apiserver_wait_interval == timedelta(seconds=5)
    assert opts.monitor_config_paths == {SLM: [], CPM: []}


def test_parse_config_paths_are_split_and_appended():
    opts = parse_options(
        [f"--config.{SLM}=a.json,b.json", f"--config.{SLM}", "c.json"], DAEMONS
    )
    assert opts.monitor_config_paths[SLM] == ["a.json", "b.json", "c.json"]
    assert opts.monitor_config_paths[CPM] == []


def test_parse_deprecated_flags_then_apply(capsys):
    opts = parse_options(["--system-log-monitors=x.json,y.json"], DAEMONS)
    assert "deprecated" in capsys.readouterr().err
    opts.apply_deprecated_options()
    assert opts.monitor_config_paths[SLM] == ["x.json", "y.json"]
    assert opts.system_log_monitor_config_paths == []


def test_parse_scalar_flags():
    opts = parse_options(
        ["--enable-k8s-exporter=false", "--port=0", "--apiserver-wait-timeout=1m30s",
         "--hostname-override", "node-a", "--version"],
        DAEMONS,
    )
    assert opts.enable_k8s_exporter is False
    assert opts.server_port == 0
    assert opts.apiserver_wait_timeout == timedelta(seconds=90)
    assert opts.hostname_override == "node-a"
    assert opts.print_version is True


@pytest.mark.parametrize("argv", [["--apiserver-wait-timeout=5"],
                                  ["--enable-k8s-exporter=maybe"],
                                  ["--unknown-flag"]])
def test_parse_rejects_bad_values(argv):
    with pytest.raises(SystemExit):
        parse_options(argv, DAEMONS)


def test_parse_includes_exporter_arguments():
    class _Options:
        value = None

        def add_arguments(self, parser):
            parser.add_argument("--exporter.parse-test", dest="parse_test_path", default="")

        def apply_arguments(self, namespace):
            self.value = namespace.parse_test_path

    exporter_options = _Options()
    register("parse-test", ExporterHandler(create_exporter=lambda o: None,
                                           options=exporter_options))
    parse_options(["--exporter.parse-test=/etc/exporter.json"], DAEMONS)
    assert exporter_options.value == "/etc/exporter.json"