"""
feed.py — Terminal client for a logged-in Instagram account.

Talks to the Graph API directly with the stored token, the way the browser
frontend did: profile header, the media feed, and each post's comments with
their replies. Posting a comment or reply re-fetches that post's comments.

Usage:
    instafeed login                      # prints the URL to open in a browser
    instafeed success "<redirect url>"   # paste the /login-success URL
    instafeed profile
    instafeed comments <media_id>
    instafeed reply <media_id> [--comment <comment_id>] "text"
    instafeed logout
"""

import argparse
import logging
import sys
from datetime import datetime
from typing import Optional

from . import comments, instagram_service
from .config import BACKEND_URL
from .instagram_models import CommentNode, Media, ReplyTarget, TokenSession, UserProfile
from .session import (
    LoginError,
    NotAuthenticatedError,
    TokenStore,
    handle_login_success,
    logout,
    require_session,
)

logger = logging.getLogger(__name__)

MEDIA_ERROR = "Failed to fetch media feed"
PROFILE_ERROR = "Failed to fetch profile data"


# ─────────────────────────────────────────────
# VIEW STATE
# ─────────────────────────────────────────────

class ProfilePage:
    def __init__(self, store: TokenStore):
        self.store = store
        self.session: Optional[TokenSession] = None
        self.profile: Optional[UserProfile] = None
        self.error: Optional[str] = None

    def load(self):
        """Raises NotAuthenticatedError when there is no usable token."""
        self.session = require_session(self.store)
        try:
            self.profile = UserProfile.model_validate(instagram_service.get_me(self.session.access_token))
        except instagram_service.InstagramAPIError as e:
            logger.error(f"Profile fetch error: {e}")
            self.error = str(e) or PROFILE_ERROR
        except Exception as e:
            logger.error(f"Profile fetch error: {type(e).__name__}: {e}")
            self.error = PROFILE_ERROR


class MediaFeed:
    def __init__(self, session: TokenSession):
        self.session = session
        self.media: list[Media] = []
        self.error: Optional[str] = None
        self.active_comments: dict[str, tuple[CommentNode, ...]] = {}
        self.replying_to: Optional[ReplyTarget] = None
        self.reply_text: str = ""

    @property
    def access_token(self) -> str:
        return self.session.access_token

    def load(self):
        try:
            page = instagram_service.get_me_media(self.access_token)
            self.media = [Media.model_validate(m) for m in page.get("data") or []]
        except Exception as e:
            logger.error(f"Media fetch error: {type(e).__name__}: {e}")
            self.error = MEDIA_ERROR

    def fetch_comments(self, media_id: str):
        try:
            page = instagram_service.get_comments(media_id, self.access_token)
            self.active_comments[media_id] = comments.build_tree(page.get("data") or [])
        except Exception as e:
            logger.error(f"Comments fetch error: {type(e).__name__}: {e}")

    def start_reply(self, media_id: str, comment_id: Optional[str] = None):
        self.replying_to = ReplyTarget(media_id=media_id, comment_id=comment_id)

    def cancel_reply(self):
        self.replying_to = None

    def post_reply(self, text: Optional[str] = None) -> bool:
        """Post the pending reply. Returns True once it is sent and comments are refreshed."""
        if text is not None:
            self.reply_text = text
        if not self.replying_to or not self.reply_text.strip():
            return False

        target = self.replying_to
        try:
            comments.post_reply(target, self.reply_text, self.access_token)
        except Exception as e:
            logger.error(f"Post reply error: {type(e).__name__}: {e}")
            return False

        self.fetch_comments(target.media_id)
        self.reply_text = ""
        self.replying_to = None
        return True


# ─────────────────────────────────────────────
# RENDERING
# ─────────────────────────────────────────────

def _date(timestamp: Optional[str]) -> str:
    if not timestamp:
        return ""
    try:
        # Graph API timestamps look like 2024-05-01T12:00:00+0000
        return datetime.strptime(timestamp, "%Y-%m-%dT%H:%M:%S%z").date().isoformat()
    except ValueError:
        return timestamp[:10]


def render_profile(profile: UserProfile) -> str:
    lines = ["━" * 44]
    if profile.name:
        lines.append(f"  {profile.name}")
    lines.append(f"  @{profile.username}")
    if profile.account_type:
        lines.append(f"  [{profile.account_type.replace('_', ' ')}]")
    if profile.biography:
        lines.append(f"  {profile.biography}")
    lines.append(
        f"  Posts: {profile.media_count or 0}   "
        f"Followers: {profile.followers_count or 0}   "
        f"Following: {profile.follows_count or 0}"
    )
    if profile.website:
        site = profile.website if profile.website.startswith("http") else f"https://{profile.website}"
        lines.append(f"  {site}")
    lines.append("━" * 44)
    return "\n".join(lines)


def render_media(item: Media) -> str:
    lines = [f"● {item.id}  {item.media_type}  {_date(item.timestamp)}"]
    if item.caption:
        lines.append(f"  {item.username or ''} {item.caption}".rstrip())
    lines.append(f"  ♥ {item.like_count or 0}   💬 {item.comments_count or 0}")
    if item.permalink:
        lines.append(f"  {item.permalink}")
    return "\n".join(lines)


def render_comments(nodes: tuple[CommentNode, ...]) -> str:
    if not nodes:
        return "  No comments."
    lines = []
    for node in nodes:
        lines.append(f"  {node.author}  {_date(node.timestamp)}  ({node.like_count} likes)  [{node.id}]")
        lines.append(f"    {node.text}")
        for reply in node.replies:
            lines.append(f"      ↳ {reply.author}  {_date(reply.timestamp)}  ({reply.like_count} likes)")
            lines.append(f"        {reply.text}")
    return "\n".join(lines)


# ─────────────────────────────────────────────
# CLI
# ─────────────────────────────────────────────

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="instafeed", description="Instagram profile, feed and comments")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("login", help="print the login URL")
    success = sub.add_parser("success", help="store the token from a /login-success URL")
    success.add_argument("url")
    sub.add_parser("profile", help="show the profile and media feed")
    show = sub.add_parser("comments", help="show a post's comments")
    show.add_argument("media_id")
    reply = sub.add_parser("reply", help="comment on a post, or reply to a comment")
    reply.add_argument("media_id")
    reply.add_argument("text")
    reply.add_argument("--comment", dest="comment_id", default=None)
    sub.add_parser("logout", help="forget the stored token")
    return parser


def main(argv: Optional[list[str]] = None, store: Optional[TokenStore] = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(message)s",
        datefmt="%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    args = _build_parser().parse_args(argv)
    store = store or TokenStore()

    if args.command == "login":
        print(f"Open this URL in a browser to log in:\n  {BACKEND_URL}/auth/instagram")
        return 0

    if args.command == "success":
        try:
            handle_login_success(args.url, store)
        except LoginError as e:
            print(f"Login failed: {e}")
            return 1
        print("Logged in. Run `instafeed profile`.")
        return 0

    if args.command == "logout":
        logout(store)
        print("Logged out.")
        return 0

    try:
        session = require_session(store)
    except NotAuthenticatedError as e:
        print(f"{e}. Run `instafeed login` first.")
        return 1

    if args.command == "profile":
        page = ProfilePage(store)
        page.load()
        if page.error:
            print(f"Error: {page.error}")
            return 1
        print(render_profile(page.profile))

        feed = MediaFeed(session)
        feed.load()
        if feed.error:
            print(feed.error)
            return 1
        for item in feed.media:
            print(render_media(item))
            print()
        return 0

    feed = MediaFeed(session)

    if args.command == "reply":
        feed.start_reply(args.media_id, args.comment_id)
        if not feed.post_reply(args.text):
            print("Nothing posted.")
            return 1

    if args.command == "comments":
        feed.fetch_comments(args.media_id)

    if args.media_id not in feed.active_comments:
        print("Could not load comments.")
        return 1
    print(render_comments(feed.active_comments[args.media_id]))
    return 0


if __name__ == "__main__":
    sys.exit(main())
