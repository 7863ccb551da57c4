"""Per-site metric summaries and the super admin fan-out across sites."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Iterable

from integrations.pagespeed import PageSpeedClient, PageSpeedError
from integrations.search_console import SearchConsoleClient, SearchConsoleError

logger = logging.getLogger(__name__)

SITE_ERRORS = (PageSpeedError, SearchConsoleError)


def search_console_statistics(client: SearchConsoleClient, site_url: str, days: int) -> dict:
    """Condense a Search Console report to the dashboard statistics block."""

    report = client.report(site_url, days)
    analytics = report.get("search_analytics") or {}
    sitemaps = (report.get("sitemaps") or {}).get("sitemaps") or []
    statistics = {
        "total_clicks": analytics.get("total_clicks") or 0,
        "total_impressions": analytics.get("total_impressions") or 0,
        "average_ctr": analytics.get("average_ctr") or 0,
        "average_position": analytics.get("average_position") or 0,
        "verified": bool((report.get("site_info") or {}).get("verified")),
        "sitemaps_count": len(sitemaps),
    }
    if analytics.get("error"):
        statistics["error"] = analytics["error"]
    return {
        "statistics": statistics,
        "date_range": report.get("date_range"),
        "last_updated": report.get("generated_at"),
    }


def pagespeed_summary(client: PageSpeedClient, site_url: str, include_metrics: bool = False) -> dict:
    report = client.get_report(site_url)
    summary = {
        "performance_score": report["performance_score"],
        "seo_score": report["seo_score"],
        "accessibility_score": report["accessibility_score"],
        "best_practices_score": report["best_practices_score"],
        "fetch_time": report["fetch_time"],
    }
    if include_metrics:
        summary["metrics"] = report["metrics"]
    return {"pagespeed": summary}


def collect_for_users(
    users: Iterable[Any],
    fetch: Callable[[str], dict],
    empty_key: str,
    max_workers: int = 4,
) -> list[dict]:
    """Run ``fetch(site_url)`` for every user with a linked site.

    Work runs in a bounded thread pool; ``fetch`` gets only the site URL and
    must not touch the database. Results keep the order of ``users``. A
    failing site is reported with ``empty_key`` set to None and an ``error``.
    """

    entries = [
        {
            "user_id": user.id,
            "user_name": user.name or user.email,
            "user_email": user.email,
            "site_url": user.site_link,
        }
        for user in users
        if user.site_link
    ]
    if not entries:
        return []

    workers = max(1, min(max_workers, len(entries)))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(fetch, entry["site_url"]): entry for entry in entries
        }
        for future in as_completed(futures):
            entry = futures[future]
            try:
                entry.update(future.result())
            except SITE_ERRORS as exc:
                logger.warning(
                    "Failed to fetch site metrics",
                    extra={"site_url": entry["site_url"], "error": str(exc)},
                )
                entry[empty_key] = None
                entry["error"] = str(exc) or "Failed to fetch site metrics"
    return entries
