"""
NutritionCoach — paths, sheet settings and logging setup.

Values come from the environment, optionally loaded from a `.env` file in the
project directory. See .env.example.
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

from dotenv import load_dotenv

# -- Paths --
PROJECT_DIR = Path(os.getenv("NUTRITION_COACH_HOME", str(Path.home() / "NutritionCoach"))).expanduser()
ENV_PATH = PROJECT_DIR / ".env"

# -- Load environment variables --
load_dotenv(dotenv_path=str(ENV_PATH))

LOG_DIR = PROJECT_DIR / "logs"
REPORT_DIR = PROJECT_DIR / "reports"

# -- Google Sheet (must be shared as "anyone with the link can view") --
SHEET_ID = os.getenv("SHEET_ID", "")
SHEET_NAME = os.getenv("SHEET_NAME", "Form Responses")
SHEET_TIMEOUT = float(os.getenv("SHEET_TIMEOUT", "15"))


def setup_logging(name: str) -> logging.Logger:
    """Send all log records to LOG_DIR/<name>.log and return the `name` logger.

    Called from CLI entry points only, so importing the library modules never
    touches the filesystem. The handler sits on the root logger so records
    from parsers.* and insights end up in the same file.
    """
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    log_path = str(LOG_DIR / f"{name}.log")

    root = logging.getLogger()
    root.setLevel(logging.INFO)
    if not any(getattr(h, "baseFilename", None) == log_path for h in root.handlers):
        # Rotating file handler: 5 MB max, keep 3 backups
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
        )
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
        )
        root.addHandler(file_handler)

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    return logger
