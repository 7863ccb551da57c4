"""Google PageSpeed Insights client."""

from __future__ import annotations

import logging
from typing import Any

import requests

logger = logging.getLogger(__name__)

PAGESPEED_ENDPOINT = "https://www.googleapis.com/pagespeedonline/v5/runPagespeed"
CATEGORIES = ("performance", "seo", "accessibility", "best-practices")
METRIC_AUDITS = {
    "FCP": "first-contentful-paint",
    "LCP": "largest-contentful-paint",
    "CLS": "cumulative-layout-shift",
    "TBT": "total-blocking-time",
}


class PageSpeedError(Exception):
    """Raised when a PageSpeed report cannot be produced."""


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def category_score(category: dict | None) -> int | None:
    """Lighthouse scores arrive as 0-1 fractions; older payloads use 0-100."""

    score = (category or {}).get("score")
    if not _is_number(score):
        return None
    if score <= 1:
        return round(score * 100)
    return round(score)


def _metric(audit: dict | None) -> dict | None:
    if not audit:
        return None
    score = audit.get("score")
    return {
        "title": audit.get("title"),
        "display_value": audit.get("displayValue"),
        "numeric_value": audit.get("numericValue"),
        "score": round(score * 100) if _is_number(score) else None,
    }


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = (body.get("error") or {}).get("message")
        if message:
            return message
    return response.reason or "Unknown PageSpeed API error"


class PageSpeedClient:
    """Fetches a Lighthouse run for a URL and condenses it to scores and metrics."""

    def __init__(self, api_key: str | None, strategy: str = "mobile", timeout: int = 60):
        self.api_key = api_key
        self.strategy = strategy
        self.timeout = timeout

    @classmethod
    def from_config(cls, config) -> "PageSpeedClient":
        return cls(
            config.get("PAGESPEED_API_KEY"),
            strategy=config.get("PAGESPEED_STRATEGY", "mobile"),
            timeout=config.get("PAGESPEED_TIMEOUT", 60),
        )

    def get_report(self, url: str) -> dict[str, Any]:
        if not self.api_key:
            raise PageSpeedError(
                "PAGESPEED_API_KEY is not set. Please configure it in your environment."
            )

        params = [
            ("url", url),
            ("key", self.api_key),
            ("strategy", self.strategy),
        ] + [("category", category) for category in CATEGORIES]

        try:
            response = requests.get(PAGESPEED_ENDPOINT, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise PageSpeedError(str(exc) or "Unknown PageSpeed API error") from exc

        if not response.ok:
            raise PageSpeedError(
                f"PageSpeed API error {response.status_code}: {_error_message(response)}"
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise PageSpeedError("PageSpeed API returned an invalid response") from exc

        lighthouse = data.get("lighthouseResult") or {}
        categories = lighthouse.get("categories") or {}
        audits = lighthouse.get("audits") or {}

        report = {
            "lighthouse_version": lighthouse.get("lighthouseVersion"),
            "fetch_time": lighthouse.get("fetchTime"),
            "performance_score": category_score(categories.get("performance")),
            "seo_score": category_score(categories.get("seo")),
            "accessibility_score": category_score(categories.get("accessibility")),
            "best_practices_score": category_score(categories.get("best-practices")),
            "metrics": {
                label: _metric(audits.get(audit_id))
                for label, audit_id in METRIC_AUDITS.items()
            },
        }

        missing = [
            name for name in CATEGORIES
            if category_score(categories.get(name)) is None
        ]
        if missing:
            logger.warning(
                "PageSpeed response missing scores",
                extra={"url": url, "missing": missing},
            )
        return report
