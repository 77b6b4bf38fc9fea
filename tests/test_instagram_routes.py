import json
from urllib.parse import parse_qs, urlparse

import httpx

from instafeed.instagram_auth import SCOPES
from instafeed.main import app
from instafeed.instagram_service import GRAPH_BASE as GRAPH, TOKEN_URL

USER_ID = 17841400000000000


def _stub_success(instagram):
    instagram.add("POST", TOKEN_URL, json={"access_token": "short-tok", "user_id": USER_ID, "permissions": ["instagram_business_basic"]})
    instagram.add("GET", f"{GRAPH}/access_token", json={"access_token": "long-tok", "token_type": "bearer", "expires_in": 5183944})
    instagram.add("GET", f"{GRAPH}/{USER_ID}", json={"id": str(USER_ID), "username": "jane.doe"})


def _location(r):
    assert r.status_code == 302
    return r.headers["location"]


def test_login_redirects_to_instagram(client):
    loc = _location(client.get("/auth/instagram", follow_redirects=False))
    parsed = urlparse(loc)
    assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == "https://www.instagram.com/oauth/authorize"
    q = parse_qs(parsed.query)
    assert q["client_id"] == ["client-123"]
    assert q["redirect_uri"] == ["http://api.test/auth/instagram/callback"]
    assert q["response_type"] == ["code"]
    assert q["enable_fb_login"] == ["0"]
    assert q["force_authentication"] == ["1"]
    assert q["scope"][0].split(",") == SCOPES


def test_callback_success_redirects_with_token_and_user(client, instagram):
    _stub_success(instagram)
    loc = _location(client.get("/auth/instagram/callback", params={"code": "abc123"}, follow_redirects=False))

    assert loc.startswith("http://frontend.test/login-success?")
    q = parse_qs(urlparse(loc).query)
    assert q["token"] == ["long-tok"]
    user = json.loads(q["user"][0])
    assert user == {"id": str(USER_ID), "username": "jane.doe"}


def test_callback_token_exchange_request(client, instagram):
    _stub_success(instagram)
    client.get("/auth/instagram/callback", params={"code": "abc123"}, follow_redirects=False)

    [token_req] = instagram.calls("POST", TOKEN_URL)
    assert token_req.headers["content-type"] == "application/x-www-form-urlencoded"
    form = parse_qs(token_req.content.decode())
    assert form == {
        "client_id": ["client-123"],
        "client_secret": ["secret-456"],
        "grant_type": ["authorization_code"],
        "redirect_uri": ["http://api.test/auth/instagram/callback"],
        "code": ["abc123"],
    }

    [upgrade_req] = instagram.calls("GET", f"{GRAPH}/access_token")
    assert dict(upgrade_req.url.params) == {
        "grant_type": "ig_exchange_token",
        "client_secret": "secret-456",
        "access_token": "short-tok",
    }

    # the profile is fetched with the short-lived token
    [profile_req] = instagram.calls("GET", f"{GRAPH}/{USER_ID}")
    assert profile_req.url.params["access_token"] == "short-tok"
    assert profile_req.url.params["fields"] == "id,username"

    assert [r.url.path for r in instagram.requests] == ["/oauth/access_token", "/access_token", f"/{USER_ID}"]


def test_callback_without_code_goes_to_login_error(client, instagram):
    loc = _location(client.get("/auth/instagram/callback", follow_redirects=False))
    assert loc == "http://frontend.test/login-error"
    assert instagram.requests == []


def test_callback_with_blank_code_goes_to_login_error(client, instagram):
    loc = _location(client.get("/auth/instagram/callback", params={"code": "  "}, follow_redirects=False))
    assert loc == "http://frontend.test/login-error"
    assert instagram.requests == []


def test_rejected_code_skips_upgrade_and_profile(client, instagram, caplog):
    instagram.add(
        "POST",
        TOKEN_URL,
        status_code=400,
        json={"error_type": "OAuthException", "code": 400, "error_message": "This authorization code has been used"},
    )
    loc = _location(client.get("/auth/instagram/callback", params={"code": "used"}, follow_redirects=False))

    assert loc == "http://frontend.test/login-error"
    assert len(instagram.requests) == 1
    assert instagram.calls("GET", f"{GRAPH}/access_token") == []
    # detail stays server-side
    assert "authorization code has been used" in caplog.text


def test_upgrade_failure_skips_profile(client, instagram):
    instagram.add("POST", TOKEN_URL, json={"access_token": "short-tok", "user_id": USER_ID})
    instagram.add("GET", f"{GRAPH}/access_token", status_code=400, json={"error": {"message": "Invalid OAuth access token", "code": 190}})

    loc = _location(client.get("/auth/instagram/callback", params={"code": "abc"}, follow_redirects=False))
    assert loc == "http://frontend.test/login-error"
    assert instagram.calls("GET", f"{GRAPH}/{USER_ID}") == []


def test_profile_failure_goes_to_login_error(client, instagram):
    _stub_success(instagram)
    instagram.add("GET", f"{GRAPH}/{USER_ID}", status_code=500, json={"error": {"message": "boom"}})

    loc = _location(client.get("/auth/instagram/callback", params={"code": "abc"}, follow_redirects=False))
    assert loc == "http://frontend.test/login-error"


def test_network_failure_goes_to_login_error(client, instagram):
    instagram.add("POST", TOKEN_URL, exc=httpx.ConnectError("connection refused"))

    loc = _location(client.get("/auth/instagram/callback", params={"code": "abc"}, follow_redirects=False))
    assert loc == "http://frontend.test/login-error"


def test_malformed_token_response_goes_to_login_error(client, instagram):
    instagram.add("POST", TOKEN_URL, json={"unexpected": True})

    loc = _location(client.get("/auth/instagram/callback", params={"code": "abc"}, follow_redirects=False))
    assert loc == "http://frontend.test/login-error"
    assert len(instagram.requests) == 1


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_routes_are_unique_by_path_and_method():
    seen = set()
    dups = []
    for r in getattr(app.router, "routes", []):
        path = getattr(r, "path", None)
        methods = set(getattr(r, "methods", set()) or set())
        methods.discard("HEAD")
        key = (path, tuple(sorted(methods)))
        if key in seen:
            dups.append(key)
        else:
            seen.add(key)
    assert not dups, f"Duplicate routes detected: {dups}"
