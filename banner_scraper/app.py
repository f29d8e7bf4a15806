#!/usr/bin/env python3
"""
Backend Application
===================

Main entry point for the banner scraper API.
"""

from flask import Flask, jsonify
from flask_cors import CORS

from banner_scraper.config import config as default_config
from banner_scraper.api import register_routes
from banner_scraper.extraction import Orchestrator
from banner_scraper.logger import get_logger
from banner_scraper.storage import SelectorStore

log = get_logger('app')


def create_app(settings=None, store=None, orchestrator=None) -> Flask:
    """
    Build the Flask app.

    Args:
        settings: Config-like object (default: global ``config``)
        store: SelectorStore shared by the routes and the orchestrator
        orchestrator: Orchestrator handling /scrape
    """
    settings = settings or default_config
    store = store or SelectorStore(settings.DATA_DIR)
    orchestrator = orchestrator or Orchestrator(settings, selector_store=store)

    app = Flask(__name__)
    CORS(app,
         methods=['GET', 'POST', 'OPTIONS'],
         allow_headers=['Content-Type'])

    app.extensions['banner_scraper'] = {
        'settings': settings,
        'store': store,
        'orchestrator': orchestrator,
    }

    @app.route('/api/health', methods=['GET'])
    def health_check():
        """Health check endpoint"""
        return jsonify({
            "status": "healthy",
            "service": "Banner Scraper API",
            "version": "1.0.0"
        })

    register_routes(app)
    return app


def main():
    app = create_app()
    log.info(f"Server running on {default_config.HOST}:{default_config.PORT} (debug={default_config.DEBUG})")
    # threaded: every request gets its own thread, event loop and browser
    app.run(host=default_config.HOST, port=default_config.PORT,
            debug=default_config.DEBUG, threaded=True)


if __name__ == '__main__':
    main()
