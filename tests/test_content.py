from app.community.db import session_scope
from app.community.modules.partnerships.models import Partnership
from app.community.modules.posts.models import Post


def test_post_create_publish_and_home_page(app, admin_client, post_form):
    r = post_form(
        admin_client,
        "/admin/posts",
        {"title": "Draft Notes", "content": "Not ready yet.", "excerpt": "WIP"},
    )
    assert r.status_code == 302
    r = post_form(
        admin_client,
        "/admin/posts",
        {"title": "Launch Recap", "content": "We launched!", "excerpt": "How it went", "published": "1"},
    )
    assert r.status_code == 302

    with session_scope(app) as s:
        posts = {p.title: p for p in s.query(Post).all()}
        assert posts["Draft Notes"].published is False
        assert posts["Launch Recap"].published is True
        assert posts["Launch Recap"].created_by is not None

    body = admin_client.get("/admin/posts").get_data(as_text=True)
    assert "Status: Draft" in body
    assert "Status: Published" in body

    home = admin_client.get("/").get_data(as_text=True)
    assert "Launch Recap" in home
    assert "Draft Notes" not in home


def test_post_edit_unpublishes_when_box_unchecked(app, admin_client, post_form):
    post_form(admin_client, "/admin/posts", {"title": "Hello", "content": "Body", "published": "on"})
    with session_scope(app) as s:
        post_id = s.query(Post).one().id

    r = post_form(admin_client, f"/admin/posts/{post_id}", {"title": "Hello again", "content": "Body"})
    assert r.status_code == 302
    with session_scope(app) as s:
        p = s.get(Post, post_id)
        assert p.title == "Hello again"
        assert p.published is False
        assert p.updated_at >= p.created_at


def test_post_requires_content(app, admin_client, post_form):
    r = post_form(admin_client, "/admin/posts", {"title": "Empty"})
    assert r.status_code == 400
    assert b"Content is required." in r.data
    with session_scope(app) as s:
        assert s.query(Post).count() == 0


def test_partnership_crud(app, admin_client, post_form):
    r = admin_client.get("/admin/partnerships")
    assert b"No partnerships yet. Add your first partner!" in r.data

    r = post_form(
        admin_client,
        "/admin/partnerships",
        {"name": "Acme Labs", "description": "GPU credits", "website_url": "https://acme.example"},
        follow_redirects=True,
    )
    assert r.status_code == 200
    assert b"Partnership created successfully." in r.data
    assert b"Acme Labs" in r.data

    with session_scope(app) as s:
        partnership_id = s.query(Partnership).one().id

    r = post_form(admin_client, f"/admin/partnerships/{partnership_id}", {"name": "Acme", "description": "GPU credits", "website_url": "ftp://acme"})
    assert r.status_code == 400
    assert b"Website URL (Optional) must be a valid http(s) URL." in r.data

    r = admin_client.get(f"/admin/partnerships/{partnership_id}/delete")
    assert b"Acme Labs" in r.data
    r = post_form(admin_client, f"/admin/partnerships/{partnership_id}/delete", {"confirm": "yes"}, follow_redirects=True)
    assert b"Partnership deleted successfully." in r.data
    with session_scope(app) as s:
        assert s.query(Partnership).count() == 0


def test_members_cannot_manage_site_content(member_client, post_form):
    # the guard sends members away before any admin view runs
    r = post_form(member_client, "/admin/posts", {"title": "Spam", "content": "x"}, follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/dashboard")
