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


import json
import os

DEFAULT_CONFIG = {
    "database_url": "sqlite:///unitel.db",
    "attendance_good_threshold": 75.0,
    "attendance_warning_threshold": 65.0,
    "request_timeout": 10.0,
    "log_level": "INFO",
}


def config_path():
    return os.environ.get("UNITEL_CONFIG", "config.json")


def load_config(path=None):
    """Read config.json and fill in anything it leaves out from DEFAULT_CONFIG"""
    path = path or config_path()
    config = dict(DEFAULT_CONFIG)
    if os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            config.update(json.load(f))
    return config


def create_config_file(path=None):
    """Create config.json file with default settings"""
    path = path or config_path()
    with open(path, "w", encoding="utf-8") as f:
        json.dump(DEFAULT_CONFIG, f, ensure_ascii=False, indent=4)
    return path


CONFIG = load_config()
