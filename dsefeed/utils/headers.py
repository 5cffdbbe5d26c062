"""
Headers Manager - Browser-like HTTP Headers
============================================

The exchange site rejects requests without a browser identity, so every
fetch carries a rotated desktop User-Agent and HTML ``Accept`` headers.
"""

import random
from typing import Dict, List, Optional

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/130.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_6) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.6 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:132.0) Gecko/20100101 Firefox/132.0",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
]

ACCEPT_LANGUAGES = ["en-US,en;q=0.9", "en-GB,en;q=0.9", "en-US,en;q=0.9,bn;q=0.7"]

HTML_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8"


class HeaderManager:
    """
    Builds request headers that mimic a desktop browser
    """

    def __init__(self, user_agents: Optional[List[str]] = None, rng: Optional[random.Random] = None):
        self.user_agents = user_agents or USER_AGENTS
        self._rng = rng or random.Random()

    def get_headers(self, referer: Optional[str] = None, additional_headers: Optional[Dict] = None) -> Dict[str, str]:
        headers = {
            "User-Agent": self._rng.choice(self.user_agents),
            "Accept": HTML_ACCEPT,
            "Accept-Language": self._rng.choice(ACCEPT_LANGUAGES),
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "Upgrade-Insecure-Requests": "1",
        }
        if referer:
            headers["Referer"] = referer
        if additional_headers:
            headers.update(additional_headers)
        return headers
