"""Google Search Console client and error classification."""

from __future__ import annotations

import calendar
import json
import logging
import os
from datetime import UTC, date, datetime, timedelta
from typing import Any, Callable

import httplib2
from google.auth.exceptions import GoogleAuthError, RefreshError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/webmasters.readonly"]
TOKEN_RETRIES = 2
ANALYTICS_ROW_LIMIT = 1000
ANALYTICS_DISPLAY_ROWS = 100
DEFAULT_RANGE = "28d"


class SearchConsoleError(Exception):
    """A Search Console call failed; ``status`` holds the HTTP code if known."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class ErrorType:
    MISSING_CREDENTIALS = "MISSING_CREDENTIALS"
    EXPIRED_TOKEN = "EXPIRED_TOKEN"
    INVALID_TOKEN = "INVALID_TOKEN"
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"
    PROPERTY_NOT_VERIFIED = "PROPERTY_NOT_VERIFIED"
    API_QUOTA_EXCEEDED = "API_QUOTA_EXCEEDED"
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    INVALID_URL = "INVALID_URL"
    NO_SITE_LINKED = "NO_SITE_LINKED"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


def load_service_account_info(value: str | None) -> dict:
    """Parse service account credentials from inline JSON or a file path."""

    if not value:
        raise SearchConsoleError(
            "GOOGLE_APPLICATION_CREDENTIALS_JSON is not set. Search Console will not work."
        )

    trimmed = value.strip()
    if trimmed.startswith("{"):
        attempted = "inline JSON"
        try:
            return json.loads(trimmed)
        except ValueError as exc:
            raise SearchConsoleError(
                f"Failed to parse GOOGLE_APPLICATION_CREDENTIALS_JSON: {exc} "
                f"(attempted: {attempted})"
            ) from exc

    if os.path.isabs(trimmed):
        path = trimmed
    else:
        relative = trimmed[2:] if trimmed.startswith("./") else trimmed
        path = os.path.abspath(os.path.join(os.getcwd(), relative))

    try:
        with open(path, encoding="utf-8") as handle:
            return json.load(handle)
    except (OSError, ValueError) as exc:
        raise SearchConsoleError(
            f"Failed to parse GOOGLE_APPLICATION_CREDENTIALS_JSON: {exc} "
            f"(attempted path: {path}, working directory: {os.getcwd()})"
        ) from exc


def _build_service(credentials_info: dict):
    credentials = service_account.Credentials.from_service_account_info(
        credentials_info, scopes=SCOPES
    )
    return build("searchconsole", "v1", credentials=credentials, cache_discovery=False)


def _http_error_message(error: HttpError) -> str:
    reason = getattr(error, "reason", None)
    if reason:
        return str(reason)
    try:
        body = json.loads(error.content or b"{}")
    except ValueError:
        body = {}
    return (body.get("error") or {}).get("message") or str(error)


def _is_token_error(error: Exception) -> bool:
    if isinstance(error, RefreshError):
        return True
    if isinstance(error, HttpError) and error.resp.status == 401:
        return True
    message = str(error)
    return "invalid_grant" in message or "JWT" in message


def _number(row: dict, key: str) -> float:
    return row.get(key) or 0


class SearchConsoleClient:
    """Thin wrapper over the ``searchconsole`` v1 API.

    A new service object is built for every call so short-lived service
    account tokens are never reused across requests.
    """

    def __init__(
        self,
        credentials_info: dict,
        service_factory: Callable[[dict], Any] | None = None,
    ):
        self.credentials_info = credentials_info
        self._service_factory = service_factory or _build_service

    @classmethod
    def from_config(cls, config) -> "SearchConsoleClient":
        return cls(load_service_account_info(config.get("GOOGLE_APPLICATION_CREDENTIALS_JSON")))

    def _execute(self, make_request: Callable[[Any], Any]) -> dict:
        """Run ``make_request(service).execute()``, retrying token failures."""

        for attempt in range(TOKEN_RETRIES + 1):
            try:
                service = self._service_factory(self.credentials_info)
                return make_request(service).execute() or {}
            except (HttpError, GoogleAuthError) as exc:
                if _is_token_error(exc) and attempt < TOKEN_RETRIES:
                    logger.warning(
                        "Search Console token error, retrying",
                        extra={"attempt": attempt + 1, "error": str(exc)},
                    )
                    continue
                if isinstance(exc, HttpError):
                    raise SearchConsoleError(
                        f"Search Console API error: {_http_error_message(exc)}",
                        status=exc.resp.status,
                    ) from exc
                raise SearchConsoleError(f"Search Console API error: {exc}") from exc
            except (OSError, httplib2.HttpLib2Error) as exc:
                raise SearchConsoleError(f"Search Console API error: {exc}") from exc
        raise SearchConsoleError("Search Console API error: retries exhausted")

    def _query(self, site_url: str, body: dict) -> list[dict]:
        response = self._execute(
            lambda service: service.searchanalytics().query(siteUrl=site_url, body=body)
        )
        return response.get("rows") or []

    def search_analytics(self, site_url: str, start_date: str, end_date: str) -> dict:
        rows = self._query(
            site_url,
            {
                "startDate": start_date,
                "endDate": end_date,
                "dimensions": ["date", "query", "page"],
                "rowLimit": ANALYTICS_ROW_LIMIT,
            },
        )
        count = len(rows)
        return {
            "total_clicks": sum(_number(row, "clicks") for row in rows),
            "total_impressions": sum(_number(row, "impressions") for row in rows),
            "average_ctr": sum(_number(row, "ctr") for row in rows) / count if count else 0,
            "average_position": (
                sum(_number(row, "position") for row in rows) / count if count else 0
            ),
            "rows": rows[:ANALYTICS_DISPLAY_ROWS],
            "date_range": {"start_date": start_date, "end_date": end_date},
        }

    def time_series(self, site_url: str, start_date: str, end_date: str) -> dict:
        rows = self._query(
            site_url,
            {
                "startDate": start_date,
                "endDate": end_date,
                "dimensions": ["date"],
                "rowLimit": ANALYTICS_ROW_LIMIT,
            },
        )

        days: dict[str, dict] = {}
        for row in rows:
            keys = row.get("keys") or []
            if not keys:
                continue
            day = days.setdefault(
                keys[0],
                {"clicks": 0, "impressions": 0, "ctr": 0, "position": 0, "count": 0},
            )
            day["clicks"] += _number(row, "clicks")
            day["impressions"] += _number(row, "impressions")
            day["ctr"] += _number(row, "ctr")
            day["position"] += _number(row, "position")
            day["count"] += 1

        series = [
            {
                "date": key,
                "clicks": day["clicks"],
                "impressions": day["impressions"],
                "ctr": day["ctr"] / day["count"],
                "position": day["position"] / day["count"],
            }
            for key, day in sorted(days.items())
        ]

        count = len(rows)
        return {
            "time_series": series,
            "totals": {
                "clicks": sum(_number(row, "clicks") for row in rows),
                "impressions": sum(_number(row, "impressions") for row in rows),
                "average_ctr": sum(_number(row, "ctr") for row in rows) / count if count else 0,
                "average_position": (
                    sum(_number(row, "position") for row in rows) / count if count else 0
                ),
            },
            "date_range": {"start_date": start_date, "end_date": end_date},
        }

    def top_queries(
        self, site_url: str, start_date: str, end_date: str, limit: int = ANALYTICS_ROW_LIMIT
    ) -> dict:
        rows = self._query(
            site_url,
            {
                "startDate": start_date,
                "endDate": end_date,
                "dimensions": ["query"],
                "rowLimit": limit,
            },
        )
        queries = [
            {
                "query": (row.get("keys") or ["Unknown"])[0] or "Unknown",
                "clicks": _number(row, "clicks"),
                "impressions": _number(row, "impressions"),
                "ctr": _number(row, "ctr"),
                "position": _number(row, "position"),
            }
            for row in rows
        ]
        return {
            "queries": queries,
            "total": len(queries),
            "date_range": {"start_date": start_date, "end_date": end_date},
        }

    def sitemaps(self, site_url: str) -> dict:
        response = self._execute(lambda service: service.sitemaps().list(siteUrl=site_url))
        return {
            "sitemaps": [
                {
                    "path": sitemap.get("path"),
                    "last_submitted": sitemap.get("lastSubmitted"),
                    "contents_count": sitemap.get("contentsCount") or 0,
                    "is_pending": bool(sitemap.get("isPending")),
                    "is_sitemaps_index": bool(sitemap.get("isSitemapsIndex")),
                }
                for sitemap in response.get("sitemap") or []
            ]
        }

    def inspect_url(self, site_url: str, inspection_url: str) -> dict:
        response = self._execute(
            lambda service: service.urlInspection().index().inspect(
                body={"inspectionUrl": inspection_url, "siteUrl": site_url}
            )
        )
        status = (response.get("inspectionResult") or {}).get("indexStatusResult") or {}
        return {
            "index_status_result": {
                "verdict": status.get("verdict") or "UNKNOWN",
                "coverage_state": status.get("coverageState") or "UNKNOWN",
                "last_crawl_time": status.get("lastCrawlTime"),
                "indexing_state": status.get("indexingState") or "UNKNOWN",
            },
            "url": inspection_url,
        }

    def site_info(self, site_url: str) -> dict:
        """Sitemap access doubles as the property verification check."""

        try:
            sitemaps = self.sitemaps(site_url)
        except SearchConsoleError as exc:
            return {"site_url": site_url, "verified": False, "error": str(exc)}
        return {
            "site_url": site_url,
            "verified": True,
            "sitemaps_count": len(sitemaps["sitemaps"]),
        }

    def report(self, site_url: str, days: int = 30, today: date | None = None) -> dict:
        """Collect analytics, sitemaps and site info; each part degrades on error."""

        end = today or datetime.now(UTC).date()
        start = end - timedelta(days=days)
        start_date, end_date = start.isoformat(), end.isoformat()

        try:
            analytics = self.search_analytics(site_url, start_date, end_date)
        except SearchConsoleError as exc:
            analytics = {
                "error": str(exc),
                "total_clicks": 0,
                "total_impressions": 0,
                "average_ctr": 0,
                "average_position": 0,
                "rows": [],
            }

        try:
            sitemaps = self.sitemaps(site_url)
        except SearchConsoleError as exc:
            sitemaps = {"error": str(exc), "sitemaps": []}

        return {
            "site_url": site_url,
            "date_range": {"start_date": start_date, "end_date": end_date, "days": days},
            "search_analytics": analytics,
            "sitemaps": sitemaps,
            "site_info": self.site_info(site_url),
            "generated_at": datetime.now(UTC).isoformat(),
        }


def _error_status(error: object) -> int | None:
    status = getattr(error, "status", None)
    if isinstance(status, int):
        return status
    if isinstance(error, HttpError):
        return error.resp.status
    return None


def _classified(error_type: str, message: str, user_message: str, action: str) -> dict:
    return {
        "type": error_type,
        "message": message,
        "user_message": user_message,
        "action_required": action,
        "technical_details": message,
    }


def classify_error(error: object) -> dict:
    """Map an exception or message to a user-facing error description."""

    message = error if isinstance(error, str) else str(error)
    status = _error_status(error)
    lowered = message.lower()

    if (
        "GOOGLE_APPLICATION_CREDENTIALS_JSON" in message
        or "credentials" in message
        or "authentication" in message
    ):
        return _classified(
            ErrorType.MISSING_CREDENTIALS,
            message,
            "Google Search Console credentials are not configured or invalid.",
            "Please check your environment and ensure GOOGLE_APPLICATION_CREDENTIALS_JSON is set correctly.",
        )

    if (
        "invalid_grant" in message
        or "JWT" in message
        or "token" in message
        or "expired" in message
        or status == 401
    ):
        return _classified(
            ErrorType.EXPIRED_TOKEN,
            message,
            "Authentication token has expired or is invalid.",
            "Please sync your system clock and restart the server. If the issue persists, "
            "verify your service account credentials.",
        )

    if (
        "Access denied" in message
        or "403" in message
        or "permission" in message
        or "Forbidden" in message
        or status == 403
    ):
        return _classified(
            ErrorType.INSUFFICIENT_PERMISSIONS,
            message,
            "Access denied. Insufficient permissions to access Search Console data.",
            "Please ensure the service account is added to Google Search Console with "
            "'Full' access for this website property.",
        )

    if (
        "not verified" in message
        or "verification" in message
        or "siteUrl" in message
        or status == 404
    ):
        return _classified(
            ErrorType.PROPERTY_NOT_VERIFIED,
            message,
            "Website property is not verified in Google Search Console.",
            "Please verify your website in Google Search Console and ensure the service "
            "account has access to it.",
        )

    if "quota" in message or "rate limit" in message or "429" in message or status == 429:
        return _classified(
            ErrorType.API_QUOTA_EXCEEDED,
            message,
            "API quota limit has been exceeded.",
            "Please wait a few minutes before trying again, or check your Google Cloud "
            "Console API quotas.",
        )

    if "network" in lowered or "connection refused" in lowered or "name resolution" in lowered:
        return _classified(
            ErrorType.NETWORK_ERROR,
            message,
            "Network connection error. Unable to reach Google Search Console API.",
            "Please check your internet connection and try again.",
        )

    if "timeout" in lowered or "timed out" in lowered or isinstance(error, TimeoutError):
        return _classified(
            ErrorType.TIMEOUT_ERROR,
            message,
            "Request timed out while fetching Search Console data.",
            "Please try again. If the issue persists, the API may be experiencing high load.",
        )

    if "invalid url" in lowered or "URL format" in message:
        return _classified(
            ErrorType.INVALID_URL,
            message,
            "The website URL is invalid or incorrectly formatted.",
            "Please contact an administrator to update your website URL.",
        )

    if "No website URL" in message or "No site" in message or "site_link" in message:
        return _classified(
            ErrorType.NO_SITE_LINKED,
            message,
            "No website URL is linked to your account.",
            "Please contact an administrator to link a website URL to your account.",
        )

    return _classified(
        ErrorType.UNKNOWN_ERROR,
        message,
        "An unexpected error occurred while fetching Search Console data.",
        "Please try again later. If the issue persists, contact support.",
    )


_STATUS_BY_TYPE = {
    ErrorType.MISSING_CREDENTIALS: 401,
    ErrorType.EXPIRED_TOKEN: 401,
    ErrorType.INVALID_TOKEN: 401,
    ErrorType.INSUFFICIENT_PERMISSIONS: 403,
    ErrorType.PROPERTY_NOT_VERIFIED: 403,
    ErrorType.API_QUOTA_EXCEEDED: 429,
    ErrorType.NETWORK_ERROR: 503,
    ErrorType.TIMEOUT_ERROR: 503,
}


def status_for_error_type(error_type: str) -> int:
    return _STATUS_BY_TYPE.get(error_type, 502)


def connection_status(error_type: str | None) -> dict:
    if not error_type:
        return {"status": "connected", "label": "Connected", "color": "green"}
    if error_type in (
        ErrorType.MISSING_CREDENTIALS,
        ErrorType.EXPIRED_TOKEN,
        ErrorType.INVALID_TOKEN,
    ):
        return {"status": "not_connected", "label": "Not Connected", "color": "red"}
    if error_type in (ErrorType.INSUFFICIENT_PERMISSIONS, ErrorType.PROPERTY_NOT_VERIFIED):
        return {"status": "permission_error", "label": "Permission Error", "color": "orange"}
    if error_type in (
        ErrorType.API_QUOTA_EXCEEDED,
        ErrorType.NETWORK_ERROR,
        ErrorType.TIMEOUT_ERROR,
    ):
        return {"status": "temporary_error", "label": "Temporary Error", "color": "yellow"}
    return {"status": "error", "label": "Error", "color": "red"}


def _months_back(day: date, months: int) -> date:
    month_index = day.year * 12 + day.month - 1 - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def date_range_for(range_key: str | None, today: date | None = None) -> dict:
    """Start and end dates (ISO strings) for a performance range key."""

    end = today or datetime.now(UTC).date()
    if range_key == "24h":
        start = end - timedelta(days=1)
    elif range_key == "7d":
        start = end - timedelta(days=7)
    elif range_key == "3m":
        start = _months_back(end, 3)
    else:
        start = end - timedelta(days=28)
    return {"start_date": start.isoformat(), "end_date": end.isoformat()}
