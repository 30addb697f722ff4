# run_flask.py
import os
from pathlib import Path

# Load environment variables from .env file FIRST (before any other imports)
from dotenv import load_dotenv
dotenv_path = Path(__file__).resolve().parent / '.env'
load_dotenv(dotenv_path=dotenv_path)

from sleep_tracker.create_app import create_app
from sleep_tracker.utils.logging_config import get_logger

logger = get_logger(__name__)


def _masked(value):
    if not value:
        return '✗ NOT SET'
    if len(value) <= 8:
        return '✓ Set'
    return f"✓ Set ({value[:4]}...{value[-4:]})"


logger.info("=== FLASK ENVIRONMENT ===")
logger.info(f"DATABASE_URI: {os.environ.get('DATABASE_URI', 'default (sleep_tracker.db)')}")
logger.info(f"GEMINI_API_KEY: {_masked(os.environ.get('GEMINI_API_KEY'))}")
logger.info(f"TIMEZONE: {os.environ.get('TIMEZONE', 'UTC')}")
logger.info("=========================")

app = create_app(os.environ.get('FLASK_CONFIG', 'sleep_tracker.configs.config.DevelopmentConfig'))


if __name__ == '__main__':
    app.run(
        host='0.0.0.0',
        port=int(os.environ.get('PORT', 8000)),
        debug=False,
        use_reloader=False,
        threaded=True,
    )
