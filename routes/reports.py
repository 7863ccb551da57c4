"""Report generation and the stored report library."""

from __future__ import annotations

from io import BytesIO

from flask import Blueprint, current_app, jsonify, request, send_file
from flask_jwt_extended import jwt_required
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import BadRequest, Forbidden, NotFound

from extensions import config_limit, limiter
from integrations.pagespeed import PageSpeedClient, PageSpeedError
from models import db, utcnow
from models.report import Report
from models.user import User
from services import pdf_service, report_service
from utils.auth import require_permission, require_user
from utils.errors import UpstreamServiceError
from utils.rbac import Permission, has_permission, is_viewer
from utils.request_validation import parse_bool, parse_json_request
from utils.validation import is_valid_url

reports_bp = Blueprint("reports", __name__)

REPORT_FORMATS = {"pdf", "json"}


def _development() -> bool:
    return current_app.config.get("APP_ENV") == "development"


def _get_report_for(user: User, report_id: int, own_permission: str, all_permission: str) -> Report:
    """Load a report the user may act on; others' reports look missing."""

    report = report_service.get_report(report_id)
    if report is None:
        raise NotFound("Report not found.")

    if report.user_id == user.id:
        if not has_permission(user.role, own_permission) and not has_permission(
            user.role, all_permission
        ):
            raise Forbidden("Forbidden: Insufficient permissions.")
        return report

    if not has_permission(user.role, all_permission):
        raise NotFound("Report not found.")
    return report


def _pdf_response(pdf: bytes, filename: str):
    return send_file(
        BytesIO(pdf),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=filename,
    )


@reports_bp.route("/report", methods=["POST"])
@jwt_required()
@limiter.limit(config_limit("REPORT_RATE_LIMIT", "10 per minute"))
def create_report():
    """Run PageSpeed for a URL and return the report as PDF or JSON."""

    user = require_user()
    if is_viewer(user.role):
        raise Forbidden("Forbidden: Viewers cannot create reports.")
    require_permission(Permission.CREATE_REPORTS)

    output = (request.args.get("format") or "pdf").strip().lower()
    if output not in REPORT_FORMATS:
        raise BadRequest("format must be one of: json, pdf.")
    save = parse_bool(request.args.get("save")) is not False

    payload = parse_json_request(request)
    url = payload.get("url")
    if not isinstance(url, str) or not is_valid_url(url):
        raise BadRequest("Invalid or missing 'url'. Please provide a fully-qualified URL.")
    url = url.strip()

    try:
        pagespeed = PageSpeedClient.from_config(current_app.config).get_report(url)
    except PageSpeedError as exc:
        current_app.logger.warning(
            "PageSpeed request failed", extra={"url": url, "error": str(exc)}
        )
        raise UpstreamServiceError(
            "Failed to fetch PageSpeed Insights data.",
            details=str(exc) if _development() else "Please check your API key and try again.",
        ) from exc

    report = {
        "url": url,
        "generated_at": utcnow().isoformat() + "Z",
        "pagespeed": pagespeed,
    }
    if output == "json":
        return jsonify(report)

    pdf = pdf_service.generate_report_pdf(report)

    report_id = None
    if save:
        try:
            report_id = report_service.save_report(user.id, url, report, pdf).id
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception(
                "Failed to save report to database", extra={"user_id": user.id}
            )

    response = _pdf_response(pdf, "pagespeed-report.pdf")
    if report_id is not None:
        response.headers["X-Report-Id"] = str(report_id)
    return response


@reports_bp.route("/reports", methods=["GET"])
@jwt_required()
@limiter.limit(config_limit("REPORTS_RATE_LIMIT", "30 per minute"))
def list_reports():
    user = require_permission(Permission.VIEW_OWN_REPORTS)
    reports = report_service.list_reports(user.id)
    return jsonify({"reports": [report.to_dict() for report in reports]})


@reports_bp.route("/reports/<int:report_id>", methods=["GET"])
@jwt_required()
@limiter.limit(config_limit("REPORTS_RATE_LIMIT", "30 per minute"))
def download_report(report_id: int):
    user = require_user()
    report = _get_report_for(
        user, report_id, Permission.VIEW_OWN_REPORTS, Permission.VIEW_ALL_REPORTS
    )
    return _pdf_response(report.pdf, f"pagespeed-report-{report.id}.pdf")


@reports_bp.route("/reports/<int:report_id>", methods=["DELETE"])
@jwt_required()
def delete_report(report_id: int):
    user = require_user()
    report = _get_report_for(
        user, report_id, Permission.DELETE_OWN_REPORTS, Permission.DELETE_ALL_REPORTS
    )
    report_service.delete_report(report)
    current_app.logger.info(
        "Report deleted", extra={"report_id": report_id, "user_id": user.id}
    )
    return jsonify({"message": "Report deleted successfully."})
