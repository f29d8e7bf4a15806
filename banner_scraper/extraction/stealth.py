"""
Browser fingerprint settings.

Randomized user agent, language header and a handful of launch flags. This
only defeats trivial bot checks; it is not an evasion layer.
"""

import random

USER_AGENTS = [
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36',
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/118.0.0.0 Safari/537.36',
    'Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/116.0.0.0 Safari/537.36',
]

ACCEPT_LANGUAGE = 'en-US,en;q=0.9'

# JavaScript injected before any page script runs
STEALTH_JS = """
// Webdriver is handled by --disable-blink-features=AutomationControlled

Object.defineProperty(navigator, 'languages', {
    get: () => ['en-US', 'en'],
    configurable: true
});

if (!window.chrome) {
    window.chrome = { runtime: {} };
}
"""


def pick_user_agent(rng: random.Random = None) -> str:
    """Pick a user agent from the fixed pool."""
    return (rng or random).choice(USER_AGENTS)


def get_launch_args(width: int, height: int) -> list:
    """Chromium flags for an isolated scraping browser."""
    return [
        '--no-sandbox',
        '--disable-setuid-sandbox',
        '--disable-blink-features=AutomationControlled',
        '--disable-dev-shm-usage',
        '--disable-gpu',
        '--disable-infobars',
        f'--window-size={width},{height}',
    ]


def get_context_options(width: int, height: int, user_agent: str) -> dict:
    """Keyword arguments for ``browser.new_context``."""
    return {
        'user_agent': user_agent,
        'viewport': {'width': width, 'height': height},
        'locale': 'en-US',
        'java_script_enabled': True,
        'extra_http_headers': {
            'Accept-Language': ACCEPT_LANGUAGE,
        },
    }
