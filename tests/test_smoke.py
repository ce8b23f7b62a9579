from urllib.parse import parse_qs, urlparse


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True

    r = client.get("/healthz")
    assert r.status_code == 200


def test_public_pages_render_anonymously(client):
    for path in ("/", "/privacy", "/terms", "/auth/login", "/auth/register"):
        r = client.get(path)
        assert r.status_code == 200, path


def test_anonymous_member_and_admin_pages_redirect_to_login(client):
    for path in ("/dashboard", "/dashboard/projects", "/dashboard/profile", "/admin", "/admin/events"):
        r = client.get(path, follow_redirects=False)
        assert r.status_code == 302, path
        assert r.headers["Location"].startswith("/auth/login"), path

    r = client.get("/admin/events", follow_redirects=False)
    assert parse_qs(urlparse(r.headers["Location"]).query)["next"] == ["/admin/events"]


def test_member_is_sent_from_admin_to_dashboard(member_client):
    r = member_client.get("/admin", follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/dashboard")

    r = member_client.get("/admin/events", follow_redirects=False)
    assert r.headers["Location"].endswith("/dashboard")


def test_signed_in_user_is_sent_from_auth_pages_to_dashboard(member_client):
    for path in ("/auth/login", "/auth/register"):
        r = member_client.get(path, follow_redirects=False)
        assert r.status_code == 302
        assert r.headers["Location"].endswith("/dashboard")


def test_admin_reaches_admin_pages(admin_client):
    r = admin_client.get("/admin")
    assert r.status_code == 200
    assert b"Admin Panel" in r.data
    assert b"Total Events" in r.data

    r = admin_client.get("/dashboard")
    assert r.status_code == 200
    assert b"Welcome, Ada Admin!" in r.data
    assert b"Admin Panel" in r.data


def test_revoked_admin_is_redirected_on_next_request(app, admin_client):
    from app.community.db import session_scope
    from app.community.models import Profile

    assert admin_client.get("/admin/events").status_code == 200
    with session_scope(app) as s:
        s.query(Profile).filter(Profile.email == "admin@example.com").one().is_admin = False

    r = admin_client.get("/admin/events", follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/dashboard")


def test_post_without_csrf_is_rejected(admin_client):
    r = admin_client.post("/admin/partnerships", data={"name": "Acme", "description": "x"})
    assert r.status_code == 400
    assert b"CSRF" in r.data


def test_unknown_page_is_404(client):
    r = client.get("/nope")
    assert r.status_code == 404
