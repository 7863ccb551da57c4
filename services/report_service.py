"""Persistence of generated reports."""

from __future__ import annotations

from typing import Any

from models import Report, db


def save_report(user_id: int, url: str, report_data: dict[str, Any], pdf_bytes: bytes) -> Report:
    """Store a report, copying the headline scores out of its PageSpeed data."""

    pagespeed = report_data.get("pagespeed") or {}
    report = Report(
        user_id=user_id,
        url=url,
        report_data=report_data,
        pdf=bytes(pdf_bytes),
        performance_score=pagespeed.get("performance_score"),
        seo_score=pagespeed.get("seo_score"),
        accessibility_score=pagespeed.get("accessibility_score"),
    )
    db.session.add(report)
    db.session.commit()
    return report


def list_reports(user_id: int) -> list[Report]:
    return (
        Report.query.filter_by(user_id=user_id)
        .order_by(Report.generated_at.desc(), Report.id.desc())
        .all()
    )


def get_report(report_id: int) -> Report | None:
    return db.session.get(Report, report_id)


def delete_report(report: Report) -> None:
    db.session.delete(report)
    db.session.commit()
