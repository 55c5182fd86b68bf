"""Command line and application options of the node problem detector."""

from __future__ import annotations

import argparse
import csv
import os
import re
import socket
import sys
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import timedelta
from fractions import Fraction
from typing import Any

from npdetect import exporters

CUSTOM_PLUGIN_MONITOR_NAME = "custom-plugin-monitor"
SYSTEM_LOG_MONITOR_NAME = "system-log-monitor"


class OptionsError(ValueError):
    """Raised when the detector options are inconsistent or invalid."""


@dataclass
class NodeProblemDetectorOptions:
    """Settings that control the node problem detector."""

    print_version: bool = False
    hostname_override: str = ""
    server_port: int = 20256
    server_address: str = "127.0.0.1"

    enable_k8s_exporter: bool = True
    event_namespace: str = ""
    apiserver_override: str = ""
    apiserver_wait_timeout: timedelta = timedelta(minutes=5)
    apiserver_wait_interval: timedelta = timedelta(seconds=5)
    k8s_exporter_heartbeat_period: timedelta = timedelta(minutes=5)

    prometheus_server_port: int = 20257
    prometheus_server_address: str = "127.0.0.1"

    system_log_monitor_config_paths: list[str] = field(default_factory=list)
    custom_plugin_monitor_config_paths: list[str] = field(default_factory=list)
    monitor_config_paths: dict[str, list[str]] | None = field(default_factory=dict)

    node_name: str = ""

    def validate(self) -> None:
        """Raise OptionsError unless the options are usable."""
        if self.enable_k8s_exporter:
            try:
                _check_url(self.apiserver_override)
            except ValueError as err:
                raise OptionsError(
                    f"apiserver-override {self.apiserver_override!r} "
                    f"is not a valid HTTP URI: {err}"
                ) from None

        if self.system_log_monitor_config_paths:
            raise OptionsError(
                "SystemLogMonitorConfigPaths is deprecated. It should have been "
                "reassigned to MonitorConfigPaths."
            )
        if self.custom_plugin_monitor_config_paths:
            raise OptionsError(
                "CustomPluginMonitorConfigPaths is deprecated. It should have been "
                "reassigned to MonitorConfigPaths."
            )

        paths = self.monitor_config_paths or {}
        if not any(paths.values()):
            raise OptionsError("No configuration option for any problem daemon is specified.")

    def apply_deprecated_options(self) -> None:
        """Move paths given by deprecated options into ``monitor_config_paths``."""
        self._move_deprecated(
            "system_log_monitor_config_paths",
            SYSTEM_LOG_MONITOR_NAME,
            "System log monitor is not supported",
            "Option --system-log-monitors is deprecated in favor of "
            "--config.system-log-monitor. They cannot be set at the same time.",
        )
        self._move_deprecated(
            "custom_plugin_monitor_config_paths",
            CUSTOM_PLUGIN_MONITOR_NAME,
            "Custom plugin monitor is not supported",
            "Option --custom-plugin-monitors is deprecated in favor of "
            "--config.custom-plugin-monitor. They cannot be set at the same time.",
        )

    def _move_deprecated(
        self, attribute: str, daemon: str, unsupported: str, conflict: str
    ) -> None:
        deprecated = getattr(self, attribute)
        if not deprecated:
            return
        current = (self.monitor_config_paths or {}).get(daemon)
        if current is None:
            raise OptionsError(unsupported)
        if current:
            raise OptionsError(conflict)
        current.extend(deprecated)
        setattr(self, attribute, [])

    def resolve_node_name(self) -> str:
        """Set and return ``node_name`` from the override, NODE_NAME or the hostname."""
        if self.hostname_override:
            self.node_name = self.hostname_override
            return self.node_name

        self.node_name = os.environ.get("NODE_NAME", "")
        if self.node_name:
            return self.node_name

        try:
            self.node_name = socket.gethostname()
        except OSError as err:
            raise OptionsError(f"Failed to get host name: {err}") from None
        return self.node_name


# --- URL checking -----------------------------------------------------------

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")
_USERINFO_EXTRA = frozenset("-._:~!$&'()*+,;=%@")


def _check_escapes(text: str) -> None:
    index = text.find("%")
    while index != -1:
        escape = text[index : index + 3]
        if len(escape) < 3 or escape[1] not in _HEX_DIGITS or escape[2] not in _HEX_DIGITS:
            raise ValueError(f"invalid URL escape {escape!r}")
        index = text.find("%", index + 3)


def _split_scheme(raw: str) -> tuple[str, str]:
    for index, char in enumerate(raw):
        if char.isascii() and char.isalpha():
            continue
        if char.isascii() and (char.isdigit() or char in "+-."):
            if index == 0:
                return "", raw
            continue
        if char == ":":
            if index == 0:
                raise ValueError("missing protocol scheme")
            return raw[:index], raw[index + 1 :]
        return "", raw
    return "", raw


def _valid_optional_port(port: str) -> bool:
    if not port:
        return True
    return port[0] == ":" and all(c.isascii() and c.isdigit() for c in port[1:])


def _check_authority(authority: str) -> None:
    userinfo, at, host = authority.rpartition("@")
    if at:
        if any(not (c.isascii() and c.isalnum()) and c not in _USERINFO_EXTRA for c in userinfo):
            raise ValueError("invalid userinfo")
        _check_escapes(userinfo)
    if host.startswith("["):
        end = host.rfind("]")
        if end < 0:
            raise ValueError("missing ']' in host")
        port = host[end + 1 :]
        if not _valid_optional_port(port):
            raise ValueError(f"invalid port {port!r} after host")
    else:
        colon = host.rfind(":")
        if colon != -1 and not _valid_optional_port(host[colon:]):
            raise ValueError(f"invalid port {host[colon:]!r} after host")
    _check_escapes(host)


def _check_url(raw: str) -> None:
    """Raise ValueError where a strict URL reference parser would reject ``raw``."""
    raw, _, fragment = raw.partition("#")
    _check_escapes(fragment)
    if any(ord(c) < 0x20 or ord(c) == 0x7F for c in raw):
        raise ValueError("invalid control character in URL")
    if raw == "*":
        return
    scheme, rest = _split_scheme(raw)
    if rest.endswith("?") and rest.count("?") == 1:
        rest = rest[:-1]
    else:
        rest = rest.partition("?")[0]
    if not rest.startswith("/"):
        if scheme:
            return
        if ":" in rest.partition("/")[0]:
            raise ValueError("first path segment in URL cannot contain colon")
    if (scheme or not rest.startswith("///")) and rest.startswith("//"):
        authority, slash, path = rest[2:].partition("/")
        _check_authority(authority)
        rest = slash + path
    _check_escapes(rest)


# --- command line parsing ---------------------------------------------------

_NANOSECONDS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60_000_000_000,
    "h": 3_600_000_000_000,
}
_DURATION_PART = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def _duration(text: str) -> timedelta:
    body = text
    sign = 1
    if body[:1] in ("+", "-") and body:
        sign = -1 if body[0] == "-" else 1
        body = body[1:]
    if body == "0":
        return timedelta(0)
    if not body:
        raise argparse.ArgumentTypeError(f"invalid duration {text!r}")
    total = Fraction(0)
    position = 0
    while position < len(body):
        match = _DURATION_PART.match(body, position)
        if match is None:
            raise argparse.ArgumentTypeError(f"invalid duration {text!r}")
        number = match.group(1).rstrip(".") or "0"
        total += Fraction(number) * _NANOSECONDS[match.group(2)]
        position = match.end()
    return timedelta(microseconds=sign * round(total / 1000))


def _bool(text: str) -> bool:
    if text in ("1", "t", "T", "true", "TRUE", "True"):
        return True
    if text in ("0", "f", "F", "false", "FALSE", "False"):
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean value {text!r}")


class _CommaListAction(argparse.Action):
    """Collect comma separated values; repeated flags append."""

    def __init__(self, *args: Any, deprecation_notice: str = "", **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.deprecation_notice = deprecation_notice

    def __call__(self, parser, namespace, values, option_string=None):
        if self.deprecation_notice:
            sys.stderr.write(
                f"Flag {option_string} has been deprecated, {self.deprecation_notice}\n"
            )
        items = next(csv.reader([values])) if values else []
        setattr(namespace, self.dest, list(getattr(namespace, self.dest) or []) + items)


def parse_options(
    argv: Sequence[str] | None,
    daemon_names: Iterable[str] | Mapping[str, str],
) -> NodeProblemDetectorOptions:
    """Parse the detector's command line.

    ``daemon_names`` lists the registered problem daemons; when it is a
    mapping, its values describe each daemon's ``--config.<name>`` option.
    """
    if isinstance(daemon_names, Mapping):
        daemons = dict(daemon_names)
    else:
        daemons = {name: "" for name in daemon_names}
    defaults = NodeProblemDetectorOptions()
    parser = argparse.ArgumentParser(prog="node-problem-detector", allow_abbrev=False)

    parser.add_argument(
        "--system-log-monitors", dest="system_log_monitor_config_paths",
        action=_CommaListAction, default=[],
        deprecation_notice="replaced by --config.system-log-monitor. NPD will panic "
        "if both --system-log-monitors and --config.system-log-monitor are set.",
        help="List of paths to system log monitor config files, comma separated.",
    )
    parser.add_argument(
        "--custom-plugin-monitors", dest="custom_plugin_monitor_config_paths",
        action=_CommaListAction, default=[],
        deprecation_notice="replaced by --config.custom-plugin-monitor. NPD will panic "
        "if both --custom-plugin-monitors and --config.custom-plugin-monitor are set.",
        help="List of paths to custom plugin monitor config files, comma separated.",
    )
    parser.add_argument(
        "--enable-k8s-exporter", dest="enable_k8s_exporter", type=_bool, nargs="?",
        const=True, default=defaults.enable_k8s_exporter,
        help="Enables reporting to Kubernetes API server.",
    )
    parser.add_argument(
        "--event-namespace", dest="event_namespace", default=defaults.event_namespace,
        help="Namespace for recorded Kubernetes events.",
    )
    parser.add_argument(
        "--apiserver-override", dest="apiserver_override",
        default=defaults.apiserver_override,
        help="Custom URI used to connect to Kubernetes ApiServer.",
    )
    parser.add_argument(
        "--apiserver-wait-timeout", dest="apiserver_wait_timeout", type=_duration,
        default=defaults.apiserver_wait_timeout,
        help="The timeout on waiting for kube-apiserver to be ready.",
    )
    parser.add_argument(
        "--apiserver-wait-interval", dest="apiserver_wait_interval", type=_duration,
        default=defaults.apiserver_wait_interval,
        help="The interval between the checks on the readiness of kube-apiserver.",
    )
    parser.add_argument(
        "--k8s-exporter-heartbeat-period", dest="k8s_exporter_heartbeat_period",
        type=_duration, default=defaults.k8s_exporter_heartbeat_period,
        help="The period at which k8s-exporter does forcibly sync with apiserver.",
    )
    parser.add_argument(
        "--version", dest="print_version", type=_bool, nargs="?", const=True,
        default=False, help="Print version information and quit",
    )
    parser.add_argument(
        "--hostname-override", dest="hostname_override", default="",
        help="Custom node name used to override hostname",
    )
    parser.add_argument(
        "--port", dest="server_port", type=int, default=defaults.server_port,
        help="The port to bind the node problem detector server. Use 0 to disable.",
    )
    parser.add_argument(
        "--address", dest="server_address", default=defaults.server_address,
        help="The address to bind the node problem detector server.",
    )
    parser.add_argument(
        "--prometheus-port", dest="prometheus_server_port", type=int,
        default=defaults.prometheus_server_port,
        help="The port to bind the Prometheus scrape endpoint. Use 0 to disable.",
    )
    parser.add_argument(
        "--prometheus-address", dest="prometheus_server_address",
        default=defaults.prometheus_server_address,
        help="The address to bind the Prometheus scrape endpoint.",
    )

    exporter_options = []
    for name in exporters.exporter_names():
        options = exporters.get_exporter_handler(name).options
        if hasattr(options, "add_arguments"):
            options.add_arguments(parser)
            exporter_options.append(options)

    daemon_dests = {}
    for index, (name, description) in enumerate(daemons.items()):
        dest = f"_daemon_config_{index}"
        daemon_dests[name] = dest
        parser.add_argument(
            f"--config.{name}", dest=dest, action=_CommaListAction, default=[],
            help=f"Comma separated configurations for {name} monitor. {description}".rstrip(),
        )

    namespace = parser.parse_args(argv)

    for options in exporter_options:
        if hasattr(options, "apply_arguments"):
            options.apply_arguments(namespace)

    values = {
        key: value for key, value in vars(namespace).items()
        if key in NodeProblemDetectorOptions.__dataclass_fields__
    }
    values["monitor_config_paths"] = {
        name: list(getattr(namespace, dest)) for name, dest in daemon_dests.items()
    }
    return NodeProblemDetectorOptions(**values)