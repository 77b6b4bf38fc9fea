"""
Instagram API client: the OAuth token endpoints plus the handful of Graph API
calls the feed uses (profile, media, comments, posting comments and replies).
Every call takes the access token explicitly; nothing is cached here.
"""
import logging

import httpx

from .instagram_models import LongLivedToken, ShortLivedToken

logger = logging.getLogger(__name__)

TOKEN_URL = "https://api.instagram.com/oauth/access_token"
GRAPH_BASE = "https://graph.instagram.com"

PROFILE_FIELDS = (
    "id,name,username,account_type,media_count,followers_count,"
    "follows_count,profile_picture_url,biography,website"
)
MEDIA_FIELDS = "id,caption,media_type,media_url,permalink,timestamp,comments_count,like_count"
COMMENT_FIELDS = "id,text,timestamp,from,replies,parent_id,like_count"


class InstagramAPIError(ValueError):
    def __init__(self, message: str, status_code: int | None = None, body=None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


def _client() -> httpx.Client:
    return httpx.Client()


def _error_body(r: httpx.Response):
    if r.headers.get("content-type", "").startswith("application/json"):
        try:
            return r.json()
        except ValueError:
            return r.text
    return r.text


def _raise_for_error(r: httpx.Response) -> None:
    if r.is_success:
        return
    body = _error_body(r)
    msg = ""
    if isinstance(body, dict):
        # graph.instagram.com nests under "error"; api.instagram.com is flat
        err = body.get("error")
        if isinstance(err, dict):
            msg = err.get("message", "")
        msg = msg or body.get("error_message", "")
    msg = msg or (body if isinstance(body, str) else "") or str(r.status_code)
    raise InstagramAPIError(msg, status_code=r.status_code, body=body)


def _get(path: str, params: dict, access_token: str) -> dict:
    params = {**params, "access_token": access_token}
    with _client() as client:
        r = client.get(f"{GRAPH_BASE}{path}", params=params)
        _raise_for_error(r)
        return r.json()


def _post(path: str, payload: dict, access_token: str) -> dict:
    with _client() as client:
        r = client.post(f"{GRAPH_BASE}{path}", json=payload, params={"access_token": access_token})
        _raise_for_error(r)
        return r.json()


# ─────────────────────────────────────────────
# OAUTH TOKENS
# ─────────────────────────────────────────────

def exchange_code_for_token(
    code: str, client_id: str, client_secret: str, redirect_uri: str
) -> ShortLivedToken:
    """Authorization code → short-lived token (about an hour)."""
    with _client() as client:
        r = client.post(
            TOKEN_URL,
            data={
                "client_id": client_id,
                "client_secret": client_secret,
                "grant_type": "authorization_code",
                "redirect_uri": redirect_uri,
                "code": code,
            },
        )
        _raise_for_error(r)
        return ShortLivedToken.model_validate(r.json())


def exchange_for_long_lived_token(short_token: str, client_secret: str) -> LongLivedToken:
    """Short-lived token → long-lived token (about sixty days)."""
    with _client() as client:
        r = client.get(
            f"{GRAPH_BASE}/access_token",
            params={
                "grant_type": "ig_exchange_token",
                "client_secret": client_secret,
                "access_token": short_token,
            },
        )
        _raise_for_error(r)
        return LongLivedToken.model_validate(r.json())


# ─────────────────────────────────────────────
# GRAPH API
# ─────────────────────────────────────────────

def get_user(user_id: str, access_token: str, fields: str = "id,username") -> dict:
    return _get(f"/{user_id}", {"fields": fields}, access_token)


def get_me(access_token: str) -> dict:
    return _get("/me", {"fields": PROFILE_FIELDS}, access_token)


def get_me_media(access_token: str) -> dict:
    """Returns the raw page: {"data": [...], "paging": {...}}."""
    return _get("/me/media", {"fields": MEDIA_FIELDS}, access_token)


def get_comments(media_id: str, access_token: str) -> dict:
    return _get(f"/{media_id}/comments", {"fields": COMMENT_FIELDS}, access_token)


def create_comment(media_id: str, message: str, access_token: str) -> dict:
    return _post(f"/{media_id}/comments", {"message": message}, access_token)


def create_reply(comment_id: str, message: str, access_token: str) -> dict:
    return _post(f"/{comment_id}/replies", {"message": message}, access_token)
