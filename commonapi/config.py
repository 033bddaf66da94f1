"""Reading the runtime configuration file."""

from __future__ import annotations

import configparser
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from commonapi.types import DEFAULT_SEND_TIMEOUT_MS

DEFAULT_BINDING = "dbus"
DEFAULT_FOLDER = "/usr/local/lib/commonapi"
DEFAULT_CONFIG_FILE = "commonapi.ini"
DEFAULT_CONFIG_FOLDER = "/etc"
DEFAULT_CONFIG_PATH = f"{DEFAULT_CONFIG_FOLDER}/{DEFAULT_CONFIG_FILE}"

PathLike = Union[str, "os.PathLike[str]"]


@dataclass
class LoggingSettings:
    """Where and how verbosely to log."""

    console: bool = True
    file: str = ""
    dlt: bool = False
    level: str = "info"


@dataclass
class RuntimeConfig:
    """Settings read from a configuration file, with defaults for the rest."""

    path: Optional[Path] = None
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    binding: str = DEFAULT_BINDING
    folder: str = DEFAULT_FOLDER
    call_timeout: int = DEFAULT_SEND_TIMEOUT_MS
    proxy_libraries: dict[str, str] = field(default_factory=dict)
    stub_libraries: dict[str, str] = field(default_factory=dict)


def find_configuration(
    default_config: PathLike, cwd: Optional[PathLike] = None
) -> Optional[Path]:
    """Return the configuration file to use, or ``None`` if there is none.

    A ``commonapi.ini`` in the working directory wins over ``default_config``.
    """
    directory = Path(cwd) if cwd is not None else Path.cwd()
    local = directory / DEFAULT_CONFIG_FILE
    if local.exists():
        return local
    fallback = Path(default_config)
    if fallback.exists():
        return fallback
    return None


def _parser() -> configparser.ConfigParser:
    parser = configparser.ConfigParser(
        delimiters=("=",),
        comment_prefixes=("#", ";"),
        interpolation=None,
        strict=False,
    )
    parser.optionxform = str  # type: ignore[assignment, method-assign]
    return parser


def read_configuration(path: Optional[PathLike]) -> RuntimeConfig:
    """Read the configuration at ``path``; ``None`` gives the defaults.

    Raises :class:`OSError` if the file cannot be read and
    :class:`ValueError` if it is malformed.
    """
    config = RuntimeConfig()
    if path is None:
        return config

    config.path = Path(path)
    parser = _parser()
    with open(config.path, encoding="utf-8") as stream:
        try:
            parser.read_file(stream)
        except configparser.Error as error:
            raise ValueError(f"malformed configuration {config.path}: {error}") from error

    if parser.has_section("logging"):
        logging = parser["logging"]
        config.logging = LoggingSettings(
            console=logging.get("console", "") == "true",
            file=logging.get("file", ""),
            dlt=logging.get("dlt", "") == "true",
            level=logging.get("level", ""),
        )

    if parser.has_section("default"):
        default = parser["default"]
        if default.get("binding", ""):
            config.binding = default["binding"]
        if default.get("folder", ""):
            config.folder = default["folder"]
        timeout = default.get("callTimeout", "")
        if timeout:
            try:
                config.call_timeout = int(timeout)
            except ValueError as error:
                raise ValueError(f"invalid callTimeout {timeout!r}") from error

    if parser.has_section("proxy"):
        config.proxy_libraries.update(parser["proxy"])
    if parser.has_section("stub"):
        config.stub_libraries.update(parser["stub"])

    return config