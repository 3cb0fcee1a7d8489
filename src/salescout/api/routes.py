"""
Admin API routes for product scraping.
"""
from typing import Any, Dict

from flask import Blueprint, Response, current_app, jsonify, request, stream_with_context
from pydantic import ValidationError

from ..logger import get_logger
from ..schemas.scrape import ScrapeRequest
from ..services.batch import BatchCoordinator
from ..services.orchestrator import ExtractionOptions

logger = get_logger(__name__)

# Create blueprint
admin_bp = Blueprint('admin', __name__, url_prefix='/admin')


def _parse_scrape_request():
    """Validate the JSON body; returns (ScrapeRequest, None) or (None, error response)."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return None, (jsonify({
            'success': False,
            'message': 'Request body must be a JSON object'
        }), 400)

    try:
        return ScrapeRequest.model_validate(data), None
    except ValidationError as e:
        message = e.errors()[0].get('msg', 'Invalid request')
        # pydantic prefixes messages raised from validators
        message = message.removeprefix('Value error, ')
        return None, (jsonify({
            'success': False,
            'message': message
        }), 400)


def _build_coordinator(test_mode: bool) -> BatchCoordinator:
    options_factory = current_app.extensions['salescout.options_factory']
    options: ExtractionOptions = options_factory(test_mode)
    return BatchCoordinator(options)


@admin_bp.route('/scrape-product', methods=['POST'])
def scrape_products() -> tuple[Dict[str, Any], int]:
    """
    Scrape one or more product pages.

    Expected JSON:
    {
        "url": "https://shop.com/products/item"
        // or "urls": ["https://...", "https://..."]
        "test": false
    }

    Returns:
    {
        "success": true,
        "successes": [{index, url, success, product, meta}, ...],
        "failures": [{index, url, success, error, errorType} | {..., skipped, domain}, ...],
        "total": 2
    }
    """
    scrape_request, error = _parse_scrape_request()
    if error:
        return error

    try:
        urls = scrape_request.all_urls()
        logger.info(f"Scrape request for {len(urls)} URL(s) (test mode: {scrape_request.test})")

        report = _build_coordinator(scrape_request.test).run(urls)
        return jsonify(report.to_dict()), 200

    except Exception as e:
        logger.error(f"Error in scrape-product endpoint: {e}", exc_info=True)
        return jsonify({
            'success': False,
            'message': str(e)
        }), 500


@admin_bp.route('/scrape-product/stream', methods=['POST'])
def scrape_products_stream():
    """
    Scrape product pages, streaming progress as server-sent events.

    Same body as /admin/scrape-product. Emits start, scraping, skip,
    success, error and complete events, each with {index, url, progress};
    index and url are null on start and complete.
    """
    scrape_request, error = _parse_scrape_request()
    if error:
        return error

    try:
        urls = scrape_request.all_urls()
        logger.info(f"Streaming scrape request for {len(urls)} URL(s)")

        coordinator = _build_coordinator(scrape_request.test)

        def generate_events():
            for event in coordinator.iter_events(urls):
                yield event.to_sse()

        return Response(
            stream_with_context(generate_events()),
            mimetype='text/event-stream',
            headers={'Cache-Control': 'no-cache', 'X-Accel-Buffering': 'no'}
        )

    except Exception as e:
        logger.error(f"Error in scrape-product/stream endpoint: {e}", exc_info=True)
        return jsonify({
            'success': False,
            'message': str(e)
        }), 500
