# Copyright 2026, Pulumi Corporation.
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

"""
Utility functions for logging the progress of infratools commands.
"""
import logging
import sys
from typing import Optional, TextIO

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

LOGGER_NAME = "infratools"

_logger = logging.getLogger(LOGGER_NAME)


def debug(msg: str) -> None:
    """
    Logs a message on the debug channel. Only shown with ``--verbose``.

    :param str msg: The message to log.
    """
    _logger.debug(msg)


def info(msg: str) -> None:
    """
    Logs a message on the info channel.

    :param str msg: The message to log.
    """
    _logger.info(msg)


def success(msg: str) -> None:
    """
    Logs the successful completion of a step.

    :param str msg: The message to log.
    """
    _logger.log(SUCCESS, msg)


def warn(msg: str) -> None:
    """
    Logs a message on the warning channel.

    :param str msg: The message to log.
    """
    _logger.warning(msg)


def error(msg: str) -> None:
    """
    Logs a message on the error channel.

    :param str msg: The message to log.
    """
    _logger.error(msg)


def configure(verbose: bool = False, quiet: bool = False, stream: Optional[TextIO] = None) -> None:
    """
    Installs a single stream handler on the infratools logger.

    :param bool verbose: Show debug messages, including captured stderr of external commands.
    :param bool quiet: Only show warnings and errors.
    :param stream: Where to write, defaults to stderr.
    """
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING

    for handler in list(_logger.handlers):
        _logger.removeHandler(handler)
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(_LevelPrefixFormatter())
    _logger.addHandler(handler)
    _logger.setLevel(level)


class _LevelPrefixFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        prefix = record.levelname.lower()
        message = record.getMessage()
        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)
        return f"{prefix}: {message}"
