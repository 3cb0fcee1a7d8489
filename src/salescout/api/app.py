"""
Flask application factory for Salescout.
"""
from typing import Callable, Optional

from flask import Flask
from flask_cors import CORS

from .. import __version__
from ..config import Config
from ..logger import get_logger
from ..services.orchestrator import ExtractionOptions
from ..services.product_llm import build_openai_client
from .routes import admin_bp

logger = get_logger(__name__)

OptionsFactory = Callable[[bool], ExtractionOptions]


def default_options_factory(test_mode: bool) -> ExtractionOptions:
    """Extraction options backed by the configured OpenAI client and a plain HTTP fetcher."""
    llm_client = build_openai_client() if Config.OPENAI_API_KEY else None
    if llm_client is None:
        logger.warning("OPENAI_API_KEY not set; AI extraction phase will fail")
    return ExtractionOptions(llm_client=llm_client, test_mode=test_mode)


def create_app(options_factory: Optional[OptionsFactory] = None) -> Flask:
    """
    Create and configure Flask application.

    Args:
        options_factory: Builds ExtractionOptions from the request's test flag
            (defaults to the configured OpenAI client and HTMLFetcher)

    Returns:
        Configured Flask app instance
    """
    app = Flask(__name__)

    # Configure app
    app.config['SECRET_KEY'] = Config.SECRET_KEY
    app.config['ENV'] = Config.FLASK_ENV
    app.extensions['salescout.options_factory'] = options_factory or default_options_factory

    # Enable CORS with configured origins
    cors_origins = Config.get_cors_origins()
    if cors_origins == ["*"]:
        CORS(app)
    else:
        CORS(app, origins=cors_origins)

    # Register blueprints
    app.register_blueprint(admin_bp)

    # Health check
    @app.route('/health')
    def health():
        """Health check endpoint."""
        return {'status': 'healthy', 'version': __version__}

    logger.info("Flask app created")
    logger.info(f"Configuration: {Config.get_summary()}")

    errors = Config.validate()
    if errors:
        logger.warning(f"Configuration warnings: {errors}")

    return app
