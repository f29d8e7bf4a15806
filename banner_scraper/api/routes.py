"""
Scraper API
===========

HTTP glue over the extraction orchestrator and the selector store.
"""

from flask import current_app, jsonify, request

from banner_scraper.errors import PersistenceFailure, ValidationError
from banner_scraper.logger import get_logger
from banner_scraper.models import ExtractedElement, ExtractionRequest, normalize_domain

log = get_logger('api')


def _services():
    return current_app.extensions['banner_scraper']


def _is_http_url(url) -> bool:
    return isinstance(url, str) and url.startswith("http") and bool(normalize_domain(url))


# =============================================================================
# SCRAPING API
# =============================================================================

def scrape():
    """POST /scrape - Extract content from a page (auto or manual mode)"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}

    try:
        scrape_request = ExtractionRequest.parse(data.get('url'), data.get('mode'))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        outcome = _services()['orchestrator'].run_sync_request(scrape_request)
    except Exception:
        log.exception("Scraping error")
        return jsonify({"error": "Server error while scraping"}), 500

    if not outcome.success or not outcome.content:
        return jsonify({"error": outcome.error or "Failed to extract content"}), 500

    return jsonify(outcome.to_dict())


# =============================================================================
# SELECTIONS API
# =============================================================================

def save_selections():
    """POST /saveSelections - Store the selector set for a URL's domain"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    url = data.get('url')
    selected = data.get('selectedElements')

    if not _is_http_url(url) or not isinstance(selected, list):
        return jsonify({"error": "Invalid data provided"}), 400

    try:
        elements = [ExtractedElement.from_dict(item) for item in selected]
    except (KeyError, TypeError, ValueError, AttributeError):
        return jsonify({"error": "Invalid data provided"}), 400

    domain = normalize_domain(url)
    try:
        _services()['store'].save_elements(domain, elements)
    except PersistenceFailure as e:
        log.error(f"Error saving selections: {e}")
        return jsonify({"error": "Failed to save selections."}), 500

    return jsonify({"success": True, "message": "Selections saved successfully!"})


def get_selections():
    """GET /selections?url=... - Show the stored selector set for a domain"""
    url = request.args.get('url', '')
    if not _is_http_url(url):
        return jsonify({"error": "Invalid URL provided"}), 400

    domain = normalize_domain(url)
    entries = _services()['store'].load(domain)
    return jsonify({
        "domain": domain,
        "selectors": [entry.to_dict() for entry in entries],
    })


# =============================================================================
# ROUTE REGISTRATION HELPER
# =============================================================================

def register_routes(app):
    """Register all routes with Flask app"""
    app.add_url_rule('/scrape', 'scrape', scrape, methods=['POST'])
    app.add_url_rule('/saveSelections', 'save_selections', save_selections, methods=['POST'])
    app.add_url_rule('/selections', 'get_selections', get_selections, methods=['GET'])
