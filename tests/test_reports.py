"""Report generation and the stored report library."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from integrations.pagespeed import PageSpeedClient, PageSpeedError
from models import Report, db
from services import report_service

SAMPLE_PAGESPEED = {
    "lighthouse_version": "12.0.0",
    "fetch_time": "2025-01-15T10:00:00.000Z",
    "performance_score": 91,
    "seo_score": 100,
    "accessibility_score": 88,
    "best_practices_score": 96,
    "metrics": {
        "FCP": {"title": "First Contentful Paint", "display_value": "1.2 s", "numeric_value": 1200.5, "score": 95},
        "LCP": {"title": "Largest Contentful Paint", "display_value": "2.1 s", "numeric_value": 2100, "score": 90},
        "CLS": {"title": "Cumulative Layout Shift", "display_value": "0.01", "numeric_value": 0.01, "score": 100},
        "TBT": None,
    },
}


@pytest.fixture()
def fake_pagespeed(monkeypatch):
    calls = []

    def get_report(self, url):
        calls.append(url)
        return dict(SAMPLE_PAGESPEED)

    monkeypatch.setattr(PageSpeedClient, "get_report", get_report)
    return calls


@pytest.fixture()
def owner(make_user, auth_headers):
    user_id = make_user("owner@example.com", site_link="https://owner.example")
    return user_id, auth_headers(user_id)


def _store_report(app, user_id, url="https://owner.example/page"):
    with app.app_context():
        report = report_service.save_report(
            user_id,
            url,
            {"url": url, "pagespeed": SAMPLE_PAGESPEED},
            b"%PDF-1.4 stored",
        )
        return report.id


def test_create_report_returns_pdf_and_saves_it(client, app, owner, fake_pagespeed):
    user_id, headers = owner

    response = client.post(
        "/report", headers=headers, json={"url": " https://owner.example/page "}
    )

    assert response.status_code == 200
    assert response.mimetype == "application/pdf"
    assert response.data.startswith(b"%PDF")
    assert "pagespeed-report.pdf" in response.headers["Content-Disposition"]
    assert fake_pagespeed == ["https://owner.example/page"]

    report_id = int(response.headers["X-Report-Id"])
    with app.app_context():
        report = db.session.get(Report, report_id)
        assert report.user_id == user_id
        assert report.url == "https://owner.example/page"
        assert report.performance_score == 91
        assert report.seo_score == 100
        assert report.accessibility_score == 88
        assert report.report_data["pagespeed"]["lighthouse_version"] == "12.0.0"
        assert report.pdf == response.data


def test_create_report_as_json(client, app, owner, fake_pagespeed):
    _, headers = owner

    response = client.post(
        "/report",
        headers=headers,
        query_string={"format": "json"},
        json={"url": "https://owner.example"},
    )

    assert response.status_code == 200
    body = response.get_json()
    assert body["url"] == "https://owner.example"
    assert body["pagespeed"]["seo_score"] == 100
    assert body["generated_at"].endswith("Z")
    with app.app_context():
        assert Report.query.count() == 0


def test_create_report_without_saving(client, app, owner, fake_pagespeed):
    _, headers = owner

    response = client.post(
        "/report",
        headers=headers,
        query_string={"save": "false"},
        json={"url": "https://owner.example"},
    )

    assert response.status_code == 200
    assert "X-Report-Id" not in response.headers
    with app.app_context():
        assert Report.query.count() == 0


def test_create_report_survives_save_failure(client, owner, fake_pagespeed, monkeypatch):
    _, headers = owner

    def broken_save(*args, **kwargs):
        raise OperationalError("INSERT", {}, Exception("disk full"))

    monkeypatch.setattr(report_service, "save_report", broken_save)

    response = client.post("/report", headers=headers, json={"url": "https://owner.example"})

    assert response.status_code == 200
    assert response.data.startswith(b"%PDF")
    assert "X-Report-Id" not in response.headers


def test_viewer_cannot_create_reports(client, make_user, auth_headers, fake_pagespeed):
    viewer_id = make_user("viewer@example.com", role="viewer")

    response = client.post(
        "/report", headers=auth_headers(viewer_id), json={"url": "https://owner.example"}
    )

    assert response.status_code == 403
    assert response.get_json()["detail"] == "Forbidden: Viewers cannot create reports."
    assert fake_pagespeed == []


@pytest.mark.parametrize(
    "query, payload, detail",
    [
        ({}, {"url": "owner.example"}, "Invalid or missing 'url'. Please provide a fully-qualified URL."),
        ({}, {"other": 1}, "Invalid or missing 'url'. Please provide a fully-qualified URL."),
        ({"format": "csv"}, {"url": "https://owner.example"}, "format must be one of: json, pdf."),
    ],
)
def test_create_report_validation(client, owner, fake_pagespeed, query, payload, detail):
    _, headers = owner

    response = client.post("/report", headers=headers, query_string=query, json=payload)

    assert response.status_code == 400
    assert response.get_json()["detail"] == detail


def test_create_report_pagespeed_failure(client, owner, monkeypatch):
    _, headers = owner

    def failing(self, url):
        raise PageSpeedError("PageSpeed API error 400: API key not valid")

    monkeypatch.setattr(PageSpeedClient, "get_report", failing)

    response = client.post("/report", headers=headers, json={"url": "https://owner.example"})

    assert response.status_code == 502
    body = response.get_json()
    assert body["detail"] == "Failed to fetch PageSpeed Insights data."
    assert body["details"] == "Please check your API key and try again."


def test_create_report_requires_login(client):
    response = client.post("/report", json={"url": "https://owner.example"})

    assert response.status_code == 401


def test_list_reports_newest_first(client, app, owner, make_user):
    user_id, headers = owner
    other_id = make_user("other@example.com")
    first = _store_report(app, user_id, "https://owner.example/one")
    second = _store_report(app, user_id, "https://owner.example/two")
    _store_report(app, other_id, "https://other.example")

    response = client.get("/reports", headers=headers)

    assert response.status_code == 200
    reports = response.get_json()["reports"]
    assert [report["id"] for report in reports] == [second, first]
    assert "pdf" not in reports[0]
    assert reports[0]["performance_score"] == 91


def test_download_report(client, app, owner):
    user_id, headers = owner
    report_id = _store_report(app, user_id)

    response = client.get(f"/reports/{report_id}", headers=headers)

    assert response.status_code == 200
    assert response.data == b"%PDF-1.4 stored"
    assert f"pagespeed-report-{report_id}.pdf" in response.headers["Content-Disposition"]


def test_other_users_reports_look_missing(client, app, owner, make_user, auth_headers):
    user_id, _ = owner
    report_id = _store_report(app, user_id)
    intruder = auth_headers(make_user("intruder@example.com"))

    assert client.get(f"/reports/{report_id}", headers=intruder).status_code == 404
    assert client.delete(f"/reports/{report_id}", headers=intruder).status_code == 404
    assert client.get("/reports/9999", headers=intruder).status_code == 404


def test_super_admin_can_read_and_delete_any_report(client, app, owner, make_user, auth_headers):
    user_id, _ = owner
    report_id = _store_report(app, user_id)
    admin = auth_headers(make_user("admin@example.com", role="super_admin"))

    assert client.get(f"/reports/{report_id}", headers=admin).status_code == 200
    assert client.delete(f"/reports/{report_id}", headers=admin).status_code == 200
    with app.app_context():
        assert db.session.get(Report, report_id) is None


def test_delete_own_report(client, app, owner):
    user_id, headers = owner
    report_id = _store_report(app, user_id)

    response = client.delete(f"/reports/{report_id}", headers=headers)

    assert response.status_code == 200
    assert response.get_json()["message"] == "Report deleted successfully."
    with app.app_context():
        assert Report.query.count() == 0


def test_viewer_cannot_delete_own_report(client, app, make_user, auth_headers):
    viewer_id = make_user("viewer@example.com", role="viewer")
    report_id = _store_report(app, viewer_id)

    response = client.delete(f"/reports/{report_id}", headers=auth_headers(viewer_id))

    assert response.status_code == 403
