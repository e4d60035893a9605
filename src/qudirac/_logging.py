# Copyright 2025 Qilimanjaro Quantum Tech
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Loguru configuration for qudirac, driven by a YAML file."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, TextIO

from loguru import logger
from pydantic import BaseModel
from pydantic_settings import BaseSettings
from ruamel.yaml import YAML

from qudirac.settings import get_settings

if TYPE_CHECKING:
    from types import FrameType


def only_qudirac(record: dict[str, Any]) -> bool:
    """Loguru filter keeping the records emitted from inside the qudirac package."""
    name = record["name"]
    return name is not None and name.split(".", 1)[0] == "qudirac"


class SinkConfig(BaseModel):
    """
    One Loguru sink. sink is stderr, stdout or a file path.
    """

    sink: str | Path
    level: str = "INFO"
    format: str | None = None
    colorize: bool = False
    enqueue: bool = False
    rotation: str | None = None
    serialize: bool = False
    only_qudirac: bool = True

    def target(self) -> TextIO | str | Path:
        if isinstance(self.sink, str) and self.sink.lower() in {"stderr", "stdout"}:
            return getattr(sys, self.sink.lower())
        return self.sink

    def options(self) -> dict[str, Any]:
        """Keyword arguments for logger.add; unset options are left to Loguru's defaults."""
        options = self.model_dump(exclude={"sink", "only_qudirac"}, exclude_none=True)
        if self.only_qudirac:
            options["filter"] = only_qudirac
        return options


class InterceptLibraryConfig(BaseModel):
    """
    A stdlib logger to quiet down before its records are routed to Loguru.
    """

    name: str
    level: str = "ERROR"


class LoggingSettings(BaseSettings):
    """
    Loguru sinks and intercepted libraries, as read from the logging YAML file.
    """

    sinks: list[SinkConfig] = []
    intercept_libraries: list[InterceptLibraryConfig] = []

    @classmethod
    def load(cls, path: str | Path) -> LoggingSettings:
        data = YAML(typ="safe").load(Path(path)) or {}
        return cls(**data)


class InterceptHandler(logging.Handler):
    """
    Redirect stdlib 'logging' records to Loguru.
    """

    def emit(self, record: logging.LogRecord) -> None:  # noqa: PLR6301
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno  # type: ignore[assignment]

        # Report the caller of the stdlib logger, not the logging module itself
        frame: FrameType | None = logging.currentframe()
        depth = 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _config_path(path: str | Path | None) -> Path:
    config_path = Path(path if path is not None else get_settings().logging_config_path).expanduser()
    if not config_path.is_absolute():
        config_path = (Path.cwd() / config_path).resolve()
    return config_path


def _intercept_stdlib(libraries: list[InterceptLibraryConfig]) -> None:
    for library in libraries:
        logging.getLogger(library.name).setLevel(library.level)

    logging.root.handlers = [InterceptHandler()]
    logging.root.setLevel(logging.NOTSET)
    for name in list(logging.root.manager.loggerDict):
        logging.getLogger(name).handlers = []
        logging.getLogger(name).propagate = True


def configure_logging(path: str | Path | None = None) -> LoggingSettings:
    """
    Replace the Loguru sinks with the ones described in a YAML file and route stdlib logging through Loguru.

    Nothing is configured at import time; call this once from the application that uses qudirac.

    Args:
        path (str | Path, optional): YAML file to load. Defaults to the logging_config_path setting
            (QUDIRAC_LOGGING_CONFIG_PATH), which points at the packaged logging_config.yaml.

    Raises:
        FileNotFoundError: If the YAML file does not exist.

    Returns:
        LoggingSettings: The settings that were applied.
    """
    settings = LoggingSettings.load(_config_path(path))

    logger.remove()
    for sink in settings.sinks:
        logger.add(sink.target(), **sink.options())

    _intercept_stdlib(settings.intercept_libraries)
    return settings
