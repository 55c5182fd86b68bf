"""Types and configuration of the custom plugin monitor."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum, IntEnum
from os import PathLike
from typing import Any

from npdetect.durations import format_duration, parse_duration

CUSTOM_PLUGIN_NAME = "custom"

DEFAULT_GLOBAL_TIMEOUT = timedelta(seconds=5)
DEFAULT_GLOBAL_TIMEOUT_STRING = format_duration(DEFAULT_GLOBAL_TIMEOUT)
DEFAULT_INVOKE_INTERVAL = timedelta(seconds=30)
DEFAULT_INVOKE_INTERVAL_STRING = format_duration(DEFAULT_INVOKE_INTERVAL)
DEFAULT_MAX_OUTPUT_LENGTH = 80
DEFAULT_CONCURRENCY = 3
DEFAULT_MESSAGE_CHANGE_BASED_CONDITION_UPDATE = False
DEFAULT_ENABLE_METRICS_REPORTING = True
DEFAULT_SKIP_INITIAL_STATUS = False


class ConfigError(ValueError):
    """Raised when a custom plugin configuration is invalid."""


class PluginStatus(IntEnum):
    """Outcome of one plugin run."""

    OK = 0
    NON_OK = 1
    UNKNOWN = 2


class ProblemType(str, Enum):
    """Whether a problem is a one-off event or changes a condition."""

    TEMP = "temporary"
    PERM = "permanent"


class ConditionStatus(str, Enum):
    """Status of a node condition."""

    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


@dataclass
class Condition:
    """A node condition maintained by a monitor."""

    type: str
    status: ConditionStatus | None = None
    transition: datetime | None = None
    reason: str = ""
    message: str = ""


@dataclass
class CustomRule:
    """How to invoke one plugin and interpret its result."""

    type: ProblemType = ProblemType.TEMP
    condition: str = ""
    reason: str = ""
    path: str = ""
    args: list[str] = field(default_factory=list)
    timeout_string: str | None = None
    timeout: timedelta | None = None


@dataclass
class PluginResult:
    """The result of running a rule's plugin."""

    rule: CustomRule
    exit_status: PluginStatus
    message: str = ""


@dataclass
class PluginGlobalConfig:
    """Settings shared by all rules; ``None`` means not yet defaulted."""

    invoke_interval_string: str | None = None
    timeout_string: str | None = None
    invoke_interval: timedelta | None = None
    timeout: timedelta | None = None
    max_output_length: int | None = None
    concurrency: int | None = None
    enable_message_change_based_condition_update: bool | None = None
    skip_initial_status: bool | None = None


@dataclass
class CustomPluginConfig:
    """Configuration of one custom plugin monitor."""

    plugin: str = ""
    plugin_global_config: PluginGlobalConfig = field(default_factory=PluginGlobalConfig)
    source: str = ""
    default_conditions: list[Condition] = field(default_factory=list)
    rules: list[CustomRule] = field(default_factory=list)
    enable_metrics_reporting: bool | None = None

    def apply_configuration(self) -> None:
        """Fill unset fields with defaults and parse duration strings."""
        g = self.plugin_global_config
        if g.timeout_string is None:
            g.timeout_string = DEFAULT_GLOBAL_TIMEOUT_STRING
        try:
            g.timeout = parse_duration(g.timeout_string)
        except ValueError as err:
            raise ConfigError(
                f"error in parsing global timeout {g.timeout_string!r}: {err}"
            ) from None

        if g.invoke_interval_string is None:
            g.invoke_interval_string = DEFAULT_INVOKE_INTERVAL_STRING
        try:
            g.invoke_interval = parse_duration(g.invoke_interval_string)
        except ValueError as err:
            raise ConfigError(
                f"error in parsing invoke interval {g.invoke_interval_string!r}: {err}"
            ) from None

        if g.max_output_length is None:
            g.max_output_length = DEFAULT_MAX_OUTPUT_LENGTH
        if g.concurrency is None:
            g.concurrency = DEFAULT_CONCURRENCY
        if g.enable_message_change_based_condition_update is None:
            g.enable_message_change_based_condition_update = (
                DEFAULT_MESSAGE_CHANGE_BASED_CONDITION_UPDATE
            )
        if g.skip_initial_status is None:
            g.skip_initial_status = DEFAULT_SKIP_INITIAL_STATUS

        for rule in self.rules:
            if rule.timeout_string is not None:
                try:
                    rule.timeout = parse_duration(rule.timeout_string)
                except ValueError as err:
                    raise ConfigError(
                        f"error in parsing rule timeout {rule}: {err}"
                    ) from None

        if self.enable_metrics_reporting is None:
            self.enable_metrics_reporting = DEFAULT_ENABLE_METRICS_REPORTING

    def validate(self) -> None:
        """Raise ConfigError unless the configuration is usable."""
        if self.plugin != CUSTOM_PLUGIN_NAME:
            raise ConfigError(
                f'NPD does not support {self.plugin!r} plugin for now. Only support "custom"'
            )
        global_timeout = self.plugin_global_config.timeout
        for rule in self.rules:
            if (
                rule.timeout is not None
                and global_timeout is not None
                and rule.timeout > global_timeout
            ):
                raise ConfigError(
                    "plugin timeout is greater than global timeout. "
                    f"Rule: {rule}. Global timeout: {global_timeout}"
                )
        for rule in self.rules:
            if not os.path.exists(rule.path):
                raise ConfigError(f"rule path {rule.path!r} does not exist. Rule: {rule}")
        known = {cond.type for cond in self.default_conditions}
        for rule in self.rules:
            if rule.type is ProblemType.PERM and rule.condition not in known:
                raise ConfigError(
                    f"Permanent problem {rule.condition} does not have preset default condition."
                )


def _condition_from_dict(data: dict[str, Any]) -> Condition:
    status = data.get("status")
    transition = data.get("transition")
    return Condition(
        type=data.get("type", ""),
        status=ConditionStatus(status) if status else None,
        transition=datetime.fromisoformat(transition) if transition else None,
        reason=data.get("reason", ""),
        message=data.get("message", ""),
    )


def _rule_from_dict(data: dict[str, Any]) -> CustomRule:
    try:
        problem_type = ProblemType(data.get("type", ProblemType.TEMP.value))
    except ValueError:
        raise ConfigError(f"unknown problem type {data.get('type')!r}") from None
    return CustomRule(
        type=problem_type,
        condition=data.get("condition", ""),
        reason=data.get("reason", ""),
        path=data.get("path", ""),
        args=list(data.get("args") or []),
        timeout_string=data.get("timeout"),
    )


def config_from_dict(data: dict[str, Any]) -> CustomPluginConfig:
    """Build a configuration from decoded JSON, without applying defaults."""
    g = data.get("pluginConfig") or {}
    return CustomPluginConfig(
        plugin=data.get("plugin", ""),
        plugin_global_config=PluginGlobalConfig(
            invoke_interval_string=g.get("invoke_interval"),
            timeout_string=g.get("timeout"),
            max_output_length=g.get("max_output_length"),
            concurrency=g.get("concurrency"),
            enable_message_change_based_condition_update=g.get(
                "enable_message_change_based_condition_update"
            ),
            skip_initial_status=g.get("skip_initial_status"),
        ),
        source=data.get("source", ""),
        default_conditions=[_condition_from_dict(c) for c in data.get("conditions") or []],
        rules=[_rule_from_dict(r) for r in data.get("rules") or []],
        enable_metrics_reporting=data.get("metricsReporting"),
    )


def load_custom_plugin_config(path: str | PathLike[str]) -> CustomPluginConfig:
    """Read, default and validate a configuration file."""
    try:
        with open(path, encoding="utf-8") as handle:
            data = json.load(handle)
    except (OSError, json.JSONDecodeError) as err:
        raise ConfigError(f"Failed to read configuration file {str(path)!r}: {err}") from None
    config = config_from_dict(data)
    config.apply_configuration()
    config.validate()
    return config