from app.community.db import session_scope
from app.community.models import AuditEvent, Profile


def test_admin_lists_and_promotes_members(app, admin_client, add_member, post_form):
    member_id = add_member("member@example.com", full_name="Mo Member")

    r = admin_client.get("/admin/users")
    assert r.status_code == 200
    assert b"member@example.com" in r.data
    assert b"Make admin" in r.data

    r = post_form(admin_client, f"/admin/users/{member_id}/admin", follow_redirects=True)
    assert b"Mo Member is now an admin." in r.data
    with session_scope(app) as s:
        assert s.get(Profile, member_id).is_admin is True
        assert s.query(AuditEvent).filter(AuditEvent.action == "profiles.admin_grant").count() == 1

    post_form(admin_client, f"/admin/users/{member_id}/admin")
    with session_scope(app) as s:
        assert s.get(Profile, member_id).is_admin is False


def test_admin_cannot_demote_self(app, admin_client, post_form):
    with session_scope(app) as s:
        admin_id = s.query(Profile).filter(Profile.email == "admin@example.com").one().id

    r = post_form(admin_client, f"/admin/users/{admin_id}/admin", follow_redirects=True)
    assert b"You cannot change your own admin access." in r.data
    with session_scope(app) as s:
        assert s.get(Profile, admin_id).is_admin is True


def test_unknown_profile_is_404(admin_client, post_form):
    assert post_form(admin_client, "/admin/users/nope/admin").status_code == 404
