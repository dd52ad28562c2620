from conftest import PASSWORD, flashed, register
from models import Profile, User
from utils.session import SessionContext


def test_register_creates_identity_and_profile(app, client):
    response = register(client, email="Meera@Example.com", full_name="Meera", role="green_champion")

    assert response.status_code == 302
    with app.app_context():
        user = User.query.filter_by(email="meera@example.com").one()
        profile = Profile.query.filter_by(user_id=user.id).one()
        assert profile.role == "green_champion"
        assert profile.is_verified is False


def test_register_enforces_password_policy(app, client):
    response = register(client, password="alllowercase1")
    assert response.status_code == 200
    with app.app_context():
        assert User.query.count() == 0


def test_login_with_bad_credentials(app, client, user_id):
    client.post("/auth/logout")
    response = client.post("/auth/login", data={"email": "asha@example.com", "password": "WrongPassword1"})
    assert response.status_code == 401


def test_login_honours_safe_next_only(app, client, user_id):
    client.post("/auth/logout")
    ok = client.post("/auth/login?next=/incentives/", data={"email": "asha@example.com", "password": PASSWORD})
    assert ok.headers["Location"].endswith("/incentives/")

    client.post("/auth/logout")
    evil = client.post(
        "/auth/login?next=https://evil.example/phish", data={"email": "asha@example.com", "password": PASSWORD}
    )
    assert evil.headers["Location"].endswith("/")
    assert "evil.example" not in evil.headers["Location"]


def test_sign_out_returns_to_anonymous(app, client, user_id):
    response = client.post("/auth/logout")
    assert response.status_code == 302
    assert flashed(client)[-1][1]["title"] == "Signed out"
    assert client.get("/profile/").status_code == 302


def test_protected_views_redirect_to_sign_in(client):
    for path in ("/report/", "/incentives/", "/profile/"):
        response = client.get(path)
        assert response.status_code == 302
        assert "/auth/login" in response.headers["Location"]


def test_session_states():
    assert SessionContext().state == "resolving"
    assert SessionContext(loading=False).state == "anonymous"
    assert SessionContext(identity="u-1", loading=False).state == "authenticated"


def test_security_headers_allow_geolocation(client):
    response = client.get("/")
    assert "geolocation=(self)" in response.headers["Permissions-Policy"]
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_seed_catalog_only_fills_empty_tables(app):
    runner = app.test_cli_runner()
    first = runner.invoke(args=["seed-catalog"])
    second = runner.invoke(args=["seed-catalog"])
    assert "Seeded 4 training modules and 4 facilities." in first.output
    assert "Seeded 0 training modules and 0 facilities." in second.output


def test_public_pages_render_for_anonymous_visitors(client):
    for path in ("/", "/training/", "/facilities/", "/auth/login", "/auth/register"):
        response = client.get(path)
        assert response.status_code == 200, path
        assert "Sign In" in response.get_data(as_text=True)


def test_every_page_renders_for_signed_in_user(client, user_id):
    for path in ("/", "/training/", "/report/", "/report/mine", "/facilities/", "/incentives/", "/profile/"):
        response = client.get(path)
        assert response.status_code == 200, path
        assert "Sign Out" in response.get_data(as_text=True)
