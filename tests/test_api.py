import logging
import uuid
from datetime import timedelta

from app.models import EventType, User, UserRole, WebsiteEvent, WebsiteSession
from app.services.date_range import MAX_EPOCH_MS
from conftest import WINDOW_END, WINDOW_START, add_visits, auth_headers, to_ms

ICON_BASE = "//umami.guole.fun/images"


def _params(**extra):
    params = {"type": "os", "startAt": to_ms(WINDOW_START), "endAt": to_ms(WINDOW_END)}
    params.update(extra)
    return params


def _seed_scenario(db, website):
    add_visits(db, website, 100, os="Mac OS", browser="chrome", country="US", url_path="/")
    add_visits(db, website, 50, os="Windows", browser="firefox", country="DE", url_path="/")


def test_main_metrics_end_to_end(client, db, owner, website):
    _seed_scenario(db, website)

    response = client.get(
        f"/api/websites/{website.id}/main-metrics",
        params=_params(),
        headers=auth_headers(owner),
    )

    assert response.status_code == 200
    body = response.json()
    assert set(body) == {"os", "browser", "country", "stats"}

    assert body["stats"]["pageviews"] == {"value": 150, "prev": 0}
    assert body["stats"]["visits"] == {"value": 150, "prev": 0}
    assert body["stats"]["visitors"] == {"value": 150, "prev": 0}
    assert body["stats"]["bounces"] == {"value": 150, "prev": 0}
    assert body["stats"]["totaltime"] == {"value": 0, "prev": 0}

    assert body["os"] == [
        {"name": "macOS", "icon": f"{ICON_BASE}/os/mac-os.png", "x": "Mac OS", "y": 100},
        {"name": "Windows", "icon": f"{ICON_BASE}/os/windows.png", "x": "Windows", "y": 50},
    ]
    assert [(item["name"], item["y"]) for item in body["browser"]] == [("Chrome", 100), ("Firefox", 50)]
    assert [(item["name"], item["x"], item["y"]) for item in body["country"]] == [
        ("United States", "US", 100),
        ("Germany", "DE", 50),
    ]
    assert body["country"][1]["icon"] == f"{ICON_BASE}/country/de.png"


def test_main_metrics_compares_with_previous_period(client, db, owner, website):
    _seed_scenario(db, website)
    add_visits(
        db, website, 30, os="Linux", browser="firefox", country="FR",
        created_at=WINDOW_START - timedelta(hours=12),
    )

    body = client.get(
        f"/api/websites/{website.id}/main-metrics",
        params=_params(),
        headers=auth_headers(owner),
    ).json()

    assert body["stats"]["pageviews"] == {"value": 150, "prev": 30}
    assert "Linux" not in [item["x"] for item in body["os"]]


def test_main_metrics_counts_time_and_bounces_per_visit(client, db, owner, website):
    session = WebsiteSession(website_id=website.id, os="Linux", browser="chrome", country="US")
    db.add(session)
    db.flush()
    long_visit = uuid.uuid4()
    visit_start = WINDOW_START + timedelta(hours=8)
    for offset, path in ((0, "/"), (30, "/pricing")):
        db.add(WebsiteEvent(
            website_id=website.id, session_id=session.id, visit_id=long_visit,
            created_at=visit_start + timedelta(seconds=offset), url_path=path,
            event_type=EventType.PAGEVIEW.value,
        ))
    db.add(WebsiteEvent(
        website_id=website.id, session_id=session.id, visit_id=uuid.uuid4(),
        created_at=visit_start + timedelta(hours=2), url_path="/",
        event_type=EventType.PAGEVIEW.value,
    ))
    db.add(WebsiteEvent(
        website_id=website.id, session_id=session.id, visit_id=long_visit,
        created_at=visit_start + timedelta(seconds=10), event_name="signup",
        event_type=EventType.CUSTOM_EVENT.value,
    ))
    db.commit()

    stats = client.get(
        f"/api/websites/{website.id}/main-metrics",
        params=_params(),
        headers=auth_headers(owner),
    ).json()["stats"]

    assert stats["pageviews"]["value"] == 3
    assert stats["visitors"]["value"] == 1
    assert stats["visits"]["value"] == 2
    assert stats["bounces"]["value"] == 1
    assert stats["totaltime"]["value"] == 30


def test_main_metrics_search_narrows_breakdowns_not_stats(client, db, owner, website):
    _seed_scenario(db, website)

    body = client.get(
        f"/api/websites/{website.id}/main-metrics",
        params=_params(type="os", search="mac"),
        headers=auth_headers(owner),
    ).json()

    assert [item["x"] for item in body["os"]] == ["Mac OS"]
    assert [item["x"] for item in body["browser"]] == ["chrome"]
    assert [item["x"] for item in body["country"]] == ["US"]
    assert body["stats"]["pageviews"]["value"] == 150


def test_main_metrics_filters_apply_everywhere(client, db, owner, website):
    _seed_scenario(db, website)

    body = client.get(
        f"/api/websites/{website.id}/main-metrics",
        params=_params(country="DE"),
        headers=auth_headers(owner),
    ).json()

    assert body["stats"]["pageviews"]["value"] == 50
    assert [item["x"] for item in body["os"]] == ["Windows"]


def test_main_metrics_limit_and_offset(client, db, owner, website):
    _seed_scenario(db, website)

    body = client.get(
        f"/api/websites/{website.id}/main-metrics",
        params=_params(limit=1, offset=1),
        headers=auth_headers(owner),
    ).json()

    assert [item["x"] for item in body["os"]] == ["Windows"]
    assert [item["x"] for item in body["country"]] == ["DE"]


def test_main_metrics_empty_website(client, db, owner, website):
    body = client.get(
        f"/api/websites/{website.id}/main-metrics",
        params=_params(),
        headers=auth_headers(owner),
    ).json()

    assert body["os"] == [] and body["browser"] == [] and body["country"] == []
    assert body["stats"]["pageviews"] == {"value": 0, "prev": 0}


def test_main_metrics_requires_token(client, db, website):
    response = client.get(f"/api/websites/{website.id}/main-metrics", params=_params())
    assert response.status_code == 401


def test_main_metrics_rejects_other_users(client, db, website):
    stranger = User(email="stranger@example.com", role=UserRole.USER)
    db.add(stranger)
    db.commit()
    db.refresh(stranger)

    response = client.get(
        f"/api/websites/{website.id}/main-metrics",
        params=_params(),
        headers=auth_headers(stranger),
    )
    assert response.status_code == 401


def test_main_metrics_allows_admins(client, db, website):
    _seed_scenario(db, website)
    admin = User(email="admin@example.com", role=UserRole.ADMIN)
    db.add(admin)
    db.commit()
    db.refresh(admin)

    response = client.get(
        f"/api/websites/{website.id}/main-metrics",
        params=_params(),
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    assert response.json()["stats"]["pageviews"]["value"] == 150


def test_main_metrics_invalid_website_id(client, db, owner):
    response = client.get(
        "/api/websites/not-a-uuid/main-metrics",
        params=_params(),
        headers=auth_headers(owner),
    )
    assert response.status_code == 400


def test_main_metrics_missing_required_params(client, db, owner, website):
    response = client.get(
        f"/api/websites/{website.id}/main-metrics",
        params={"startAt": to_ms(WINDOW_START), "endAt": to_ms(WINDOW_END)},
        headers=auth_headers(owner),
    )
    assert response.status_code == 422


def test_main_metrics_query_failure_is_bad_request(client, db, owner, website):
    _seed_scenario(db, website)

    # searching an unknown dimension produces a filter on a column that does not exist
    response = client.get(
        f"/api/websites/{website.id}/main-metrics",
        params=_params(type="no_such_column", search="x"),
        headers=auth_headers(owner),
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Bad request"


def test_me_returns_current_user(client, db, owner):
    response = client.get("/api/auth/me", headers=auth_headers(owner))
    assert response.status_code == 200
    assert response.json()["email"] == "owner@example.com"


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"


def test_main_metrics_out_of_range_timestamps_are_rejected(client, db, owner, website):
    for start_at, end_at in ((10**17, 10**17 + 1000), (-1, 1000)):
        response = client.get(
            f"/api/websites/{website.id}/main-metrics",
            params=_params(startAt=start_at, endAt=end_at),
            headers=auth_headers(owner),
        )
        assert response.status_code == 422


def test_main_metrics_unrepresentable_comparison_period(client, db, owner, website):
    # the previous period of a window this long starts before datetime.min
    response = client.get(
        f"/api/websites/{website.id}/main-metrics",
        params=_params(startAt=0, endAt=MAX_EPOCH_MS),
        headers=auth_headers(owner),
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid date range"


def test_main_metrics_query_failure_logs_traceback(client, db, owner, website, caplog):
    with caplog.at_level(logging.WARNING, logger="app.api.websites"):
        response = client.get(
            f"/api/websites/{website.id}/main-metrics",
            params=_params(type="no_such_column", search="x"),
            headers=auth_headers(owner),
        )

    assert response.status_code == 400
    failures = [r for r in caplog.records if r.name == "app.api.websites"]
    assert failures and failures[0].exc_info is not None
