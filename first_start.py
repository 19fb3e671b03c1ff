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


import os

from config import config_path, create_config_file, load_config
from logger import get_logger

logger = get_logger("first_start")


def setup_database(database_url):
    """Create the database tables"""
    from sqlalchemy import create_engine
    from database import init_db

    engine = create_engine(database_url)
    init_db(bind=engine)
    logger.info("Database tables created at %s", database_url)


def main():
    """Main setup function"""
    logger.info("Starting setup process...")

    # Create config file if it doesn't exist
    if not os.path.exists(config_path()):
        create_config_file()
        logger.info("Config file created at %s", config_path())

    setup_database(load_config()["database_url"])
    logger.info("Setup completed successfully!")


if __name__ == "__main__":
    main()
