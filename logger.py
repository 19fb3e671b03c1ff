# UNI-TEL - Academic tracker
# Copyright (C) 2026 (linuxdev)
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.


"""The ``unitel`` logger; every module logs through a child of it."""

import logging
import sys

from config import CONFIG

ROOT_NAME = "unitel"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s - %(message)s"


def setup_logging(level=None):
    """Attach the stdout handler once and apply the configured level"""
    root = logging.getLogger(ROOT_NAME)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        root.addHandler(handler)
    root.setLevel(str(level or CONFIG["log_level"]).upper())
    return root


def get_logger(name: str | None = None) -> logging.Logger:
    root = logging.getLogger(ROOT_NAME)
    return root.getChild(name) if name else root


setup_logging()
