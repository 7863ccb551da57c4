"""Dashboard, PageSpeed overview and Search Console endpoints."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import jwt_required
from werkzeug.exceptions import BadRequest, Forbidden

from integrations.pagespeed import PageSpeedClient
from integrations.search_console import (
    SearchConsoleClient,
    SearchConsoleError,
    classify_error,
    connection_status,
    date_range_for,
    status_for_error_type,
)
from models import utcnow
from models.user import User
from services import auth_service, site_metrics
from utils.auth import require_permission, require_user
from utils.errors import UpstreamServiceError
from utils.rbac import Permission, Role, get_accessible_site_links
from utils.request_validation import parse_int, parse_json_request
from utils.validation import is_valid_url, normalize_site_url

metrics_bp = Blueprint("metrics", __name__)

NO_SITE_MESSAGE = "No website URL linked to your account. Please contact an administrator."
OTHER_SITE_MESSAGE = "Access denied. You can only query your own website URL."
DEFAULT_DAYS = 30
MAX_DAYS = 90


def _search_console_settings() -> dict:
    """Plain config values handed to worker threads instead of the app."""

    return {
        "GOOGLE_APPLICATION_CREDENTIALS_JSON": current_app.config.get(
            "GOOGLE_APPLICATION_CREDENTIALS_JSON"
        )
    }


def _max_workers() -> int:
    return current_app.config.get("SEARCH_CONSOLE_MAX_WORKERS", 4)


def _show_technical_details(user: User) -> bool:
    return user.role == Role.SUPER_ADMIN or current_app.config.get("APP_ENV") == "development"


def _search_console_failure(user: User, error: Exception, message: str) -> UpstreamServiceError:
    classified = classify_error(error)
    current_app.logger.warning(
        "Search Console request failed",
        extra={"error_type": classified["type"], "error": classified["message"]},
    )
    show_details = _show_technical_details(user)
    return UpstreamServiceError(
        message,
        status_code=status_for_error_type(classified["type"]),
        error_type=classified["type"],
        user_message=classified["user_message"],
        action_required=classified["action_required"],
        connection=connection_status(classified["type"]),
        technical_details=classified["technical_details"] if show_details else None,
    )


def _ensure_site_access(user: User, site_url: str) -> None:
    """Non-admins may only query the origins of sites assigned to them."""

    if user.role == Role.SUPER_ADMIN:
        return
    allowed = {normalize_site_url(link) for link in get_accessible_site_links(user)}
    if not allowed:
        raise Forbidden(NO_SITE_MESSAGE)
    if normalize_site_url(site_url) not in allowed:
        raise Forbidden(OTHER_SITE_MESSAGE)


def _overview(user: User, fetch, empty_key: str, user_fetch=None):
    """Shared role split for the dashboard and PageSpeed overview."""

    if user.role == Role.SUPER_ADMIN:
        users = auth_service.list_users(include_inactive=False)
        websites = site_metrics.collect_for_users(users, fetch, empty_key, _max_workers())
        return jsonify(
            {
                "role": Role.SUPER_ADMIN,
                "total_users": len(users),
                "total_websites": len(websites),
                "websites": websites,
            }
        )

    if user.role != Role.USER:
        raise Forbidden("Access denied. Insufficient permissions.")

    if not user.site_link:
        return jsonify(
            {"role": Role.USER, "site_url": None, empty_key: None, "message": NO_SITE_MESSAGE}
        )

    body = {"role": Role.USER, "site_url": user.site_link}
    try:
        body.update((user_fetch or fetch)(user.site_link))
    except site_metrics.SITE_ERRORS as exc:
        body[empty_key] = None
        body["error"] = str(exc) or "Failed to fetch site metrics"
    return jsonify(body)


@metrics_bp.route("/dashboard", methods=["GET"])
@jwt_required()
def dashboard():
    """Search Console statistics for the caller's site, or every site for admins."""

    user = require_user()
    days = parse_int(request.args.get("days"), DEFAULT_DAYS, minimum=1, maximum=MAX_DAYS)
    settings = _search_console_settings()

    def fetch(site_url: str) -> dict:
        client = SearchConsoleClient.from_config(settings)
        return site_metrics.search_console_statistics(client, site_url, days)

    return _overview(user, fetch, "statistics")


@metrics_bp.route("/pagespeed", methods=["GET"])
@jwt_required()
def pagespeed_overview():
    user = require_user()
    client = PageSpeedClient.from_config(current_app.config)

    def fetch(site_url: str) -> dict:
        return site_metrics.pagespeed_summary(client, site_url)

    def fetch_with_metrics(site_url: str) -> dict:
        return site_metrics.pagespeed_summary(client, site_url, include_metrics=True)

    return _overview(user, fetch, "pagespeed", user_fetch=fetch_with_metrics)


@metrics_bp.route("/searchconsole", methods=["POST"])
@jwt_required()
def search_console_report():
    """Full Search Console report for the origin of ``url``."""

    user = require_permission(Permission.ACCESS_SEARCH_CONSOLE)
    payload = parse_json_request(request)
    url = payload.get("url")
    if not isinstance(url, str) or not is_valid_url(url):
        raise BadRequest("Invalid or missing 'url'. Please provide a fully-qualified URL.")

    site_url = normalize_site_url(url.strip())
    _ensure_site_access(user, site_url)
    days = parse_int(payload.get("days"), DEFAULT_DAYS, minimum=1, maximum=MAX_DAYS)

    try:
        client = SearchConsoleClient.from_config(_search_console_settings())
        report = client.report(site_url, days)
    except SearchConsoleError as exc:
        raise _search_console_failure(user, exc, "Failed to fetch Search Console data.") from exc
    return jsonify(report)


@metrics_bp.route("/searchconsole/performance", methods=["GET"])
@jwt_required()
def search_console_performance():
    """Time series, totals and paginated top queries for one site."""

    user = require_permission(Permission.ACCESS_SEARCH_CONSOLE)
    requested = (request.args.get("url") or "").strip() or None

    if user.role == Role.SUPER_ADMIN:
        site_url = requested or user.site_link
        if not site_url or not is_valid_url(site_url):
            raise BadRequest(
                "Please provide a valid 'url' parameter or ensure your account has a "
                "linked website URL."
            )
    else:
        links = get_accessible_site_links(user)
        if not links:
            raise Forbidden(NO_SITE_MESSAGE)
        site_url = requested or links[0]
        if not is_valid_url(site_url):
            raise BadRequest("Invalid URL format.")
        _ensure_site_access(user, site_url)

    site_url = normalize_site_url(site_url)
    range_key = request.args.get("range") or "28d"
    page = parse_int(request.args.get("page"), 1, minimum=1)
    page_size = parse_int(request.args.get("page_size"), 10, minimum=1, maximum=100)
    dates = date_range_for(range_key)

    try:
        client = SearchConsoleClient.from_config(_search_console_settings())
        series = client.time_series(site_url, dates["start_date"], dates["end_date"])
        top = client.top_queries(site_url, dates["start_date"], dates["end_date"])
    except SearchConsoleError as exc:
        raise _search_console_failure(
            user, exc, "Failed to fetch Search Console performance data."
        ) from exc

    total = top["total"]
    start = (page - 1) * page_size
    return jsonify(
        {
            "site_url": site_url,
            "time_series": series["time_series"],
            "totals": series["totals"],
            "top_queries": {
                "queries": top["queries"][start:start + page_size],
                "total": total,
                "page": page,
                "page_size": page_size,
                "total_pages": -(-total // page_size),
            },
            "date_range": {**dates, "range": range_key},
            "last_updated": utcnow().isoformat() + "Z",
        }
    )
