"""Service configuration read from a YAML file with environment overrides."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Any, Callable

import yaml


class ConfigError(Exception):
    """Raised when the configuration cannot be read or is incomplete."""


@dataclass(frozen=True)
class AppSection:
    name: str
    version: str


@dataclass(frozen=True)
class HTTPSection:
    port: str


@dataclass(frozen=True)
class PostgresSection:
    url: str
    connect_timeout: timedelta


@dataclass(frozen=True)
class LogSection:
    level: str


@dataclass(frozen=True)
class Config:
    app: AppSection
    http: HTTPSection
    postgres: PostgresSection
    log: LogSection


_UNIT_MICROSECONDS = {
    "ns": Decimal("0.001"),
    "us": Decimal(1),
    "µs": Decimal(1),
    "μs": Decimal(1),
    "ms": Decimal(1000),
    "s": Decimal(1_000_000),
    "m": Decimal(60_000_000),
    "h": Decimal(3_600_000_000),
}
_TOKEN = r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|h|m|s)"
_TOKEN_RE = re.compile(_TOKEN)
_DURATION_RE = re.compile(rf"(?:{_TOKEN})+")


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``"300ms"``, ``"1.5h"`` or ``"2m30s"``."""
    original = text
    sign = 1
    if text[:1] in "+-" and text:
        if text[0] == "-":
            sign = -1
        text = text[1:]
    if text == "0":
        return timedelta(0)
    if not text or not _DURATION_RE.fullmatch(text):
        raise ValueError(f'time: invalid duration "{original}"')
    total = sum(
        (Decimal(number) * _UNIT_MICROSECONDS[unit] for number, unit in _TOKEN_RE.findall(text)),
        Decimal(0),
    )
    return timedelta(microseconds=float(total)) * sign


def _to_str(value: Any) -> str:
    return str(value)


def _to_duration(value: Any) -> timedelta:
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        raise ValueError(f"invalid duration {value!r}")
    if isinstance(value, int):
        # A bare number counts nanoseconds.
        return timedelta(microseconds=value / 1000)
    return parse_duration(str(value))


_FIELDS: tuple[tuple[str, str, str, Callable[[Any], Any]], ...] = (
    ("app", "name", "APP_NAME", _to_str),
    ("app", "version", "APP_VERSION", _to_str),
    ("http", "port", "SERVER_PORT", _to_str),
    ("postgres", "url", "POSTGRES_URL", _to_str),
    ("postgres", "connect_timeout", "POSTGRES_CONNECT_TIMEOUT", _to_duration),
    ("logger", "level", "LOG_LEVEL", _to_str),
)

_PREFIX = "config - NewConfig - cleanenv.ReadConfig"


def load_config(path: str) -> Config:
    """Read the YAML file at *path*; set environment variables win over it."""
    try:
        with open(path, encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as err:
        raise ConfigError(f"{_PREFIX}: {err}") from err

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"{_PREFIX}: top level of {path} must be a mapping")

    values: dict[tuple[str, str], Any] = {}
    for section, key, env_name, convert in _FIELDS:
        value: Any = os.environ.get(env_name) or None
        if value is None:
            section_data = raw.get(section) or {}
            if not isinstance(section_data, dict):
                raise ConfigError(f"{_PREFIX}: section {section!r} must be a mapping")
            value = section_data.get(key)
        if value is None or value == "":
            raise ConfigError(
                f'{_PREFIX}: field "{section}.{key}" is required but the value '
                f"is not provided (env {env_name})"
            )
        try:
            values[(section, key)] = convert(value)
        except ValueError as err:
            raise ConfigError(f"{_PREFIX}: field {section}.{key}: {err}") from err

    return Config(
        app=AppSection(name=values[("app", "name")], version=values[("app", "version")]),
        http=HTTPSection(port=values[("http", "port")]),
        postgres=PostgresSection(
            url=values[("postgres", "url")],
            connect_timeout=values[("postgres", "connect_timeout")],
        ),
        log=LogSection(level=values[("logger", "level")]),
    )