"""
Main entry point for the Salescout admin API.

Starts the Flask development server with the admin scrape endpoints:

    POST /admin/scrape-product
    POST /admin/scrape-product/stream
"""
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from salescout.api import create_app
from salescout.config import Config
from salescout.logger import get_logger

logger = get_logger(__name__)


def main():
    errors = Config.validate()
    for error in errors:
        logger.warning(f"Config: {error}")

    app = create_app()

    logger.info(f"Salescout dev server on http://{Config.FLASK_HOST}:{Config.FLASK_PORT} (debug={Config.FLASK_DEBUG})")

    # threaded so a long streaming batch does not block other requests
    app.run(
        host=Config.FLASK_HOST,
        port=Config.FLASK_PORT,
        debug=Config.FLASK_DEBUG,
        threaded=True
    )


if __name__ == "__main__":
    main()
