"""
Instagram Business Login: the authorize URL and the callback exchange.

The callback is a straight line of steps, each consuming the previous one's
output:

    Redirected → CodeReceived → TokenExchanged → TokenUpgraded
               → ProfileFetched → SuccessRedirect

Any step that fails lands in ErrorRedirect and the rest are skipped. The
client only ever sees login-success or login-error; the reason goes to the
server log.
"""
import json
import logging
from enum import Enum
from urllib.parse import quote, urlencode

import httpx

from . import instagram_service
from .config import Settings
from .instagram_models import LongLivedToken, ShortLivedToken, UserProfile

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://www.instagram.com/oauth/authorize"
SCOPES = [
    "instagram_business_basic",
    "instagram_business_manage_messages",
    "instagram_business_manage_comments",
    "instagram_business_content_publish",
    "instagram_business_manage_insights",
]


class ExchangeState(str, Enum):
    REDIRECTED       = "Redirected"
    CODE_RECEIVED    = "CodeReceived"
    TOKEN_EXCHANGED  = "TokenExchanged"
    TOKEN_UPGRADED   = "TokenUpgraded"
    PROFILE_FETCHED  = "ProfileFetched"
    SUCCESS_REDIRECT = "SuccessRedirect"
    ERROR_REDIRECT   = "ErrorRedirect"


class MissingCodeError(ValueError):
    pass


def build_authorize_url(settings: Settings) -> str:
    params = {
        "enable_fb_login": "0",
        "force_authentication": "1",
        "client_id": settings.instagram_client_id,
        "redirect_uri": settings.redirect_uri,
        "response_type": "code",
        "scope": ",".join(SCOPES),
    }
    return f"{AUTHORIZE_URL}?{urlencode(params)}"


def success_redirect_url(settings: Settings, token: str, profile: UserProfile) -> str:
    user = json.dumps(profile.model_dump(exclude_none=True), separators=(",", ":"))
    query = urlencode({"token": token, "user": user}, quote_via=quote)
    return f"{settings.frontend_url}/login-success?{query}"


def error_redirect_url(settings: Settings) -> str:
    return f"{settings.frontend_url}/login-error"


class CallbackExchange:
    """
    One callback request's walk through the exchange. Holds nothing beyond
    the request; a fresh instance is created per callback.
    """

    def __init__(self, settings: Settings, code: str | None):
        self.settings = settings
        self.code = code
        self.state = ExchangeState.REDIRECTED
        self.short_token: ShortLivedToken | None = None
        self.long_token: LongLivedToken | None = None
        self.profile: UserProfile | None = None

    # ── steps ────────────────────────────────────────────────────────────

    def _receive_code(self):
        if not self.code or not self.code.strip():
            raise MissingCodeError("callback received no authorization code")
        self.state = ExchangeState.CODE_RECEIVED

    def _exchange_code(self):
        self.short_token = instagram_service.exchange_code_for_token(
            self.code,
            client_id=self.settings.instagram_client_id,
            client_secret=self.settings.instagram_client_secret,
            redirect_uri=self.settings.redirect_uri,
        )
        self.state = ExchangeState.TOKEN_EXCHANGED

    def _upgrade_token(self):
        self.long_token = instagram_service.exchange_for_long_lived_token(
            self.short_token.access_token,
            client_secret=self.settings.instagram_client_secret,
        )
        self.state = ExchangeState.TOKEN_UPGRADED

    def _fetch_profile(self):
        # Both tokens are valid for the same user at this point; the
        # short-lived one is what the profile request has always used.
        data = instagram_service.get_user(
            self.short_token.user_id, self.short_token.access_token, fields="id,username"
        )
        self.profile = UserProfile.model_validate(data)
        self.state = ExchangeState.PROFILE_FETCHED

    # ── driver ───────────────────────────────────────────────────────────

    def run(self) -> str:
        """Walk every step and return the URL to redirect the browser to."""
        steps = [self._receive_code, self._exchange_code, self._upgrade_token, self._fetch_profile]
        for step in steps:
            try:
                step()
            except (httpx.HTTPError, ValueError) as e:
                self._fail(e)
                return error_redirect_url(self.settings)

        self.state = ExchangeState.SUCCESS_REDIRECT
        logger.info(f"Instagram login complete for @{self.profile.username} (id={self.profile.id})")
        return success_redirect_url(self.settings, self.long_token.access_token, self.profile)

    def _fail(self, exc: Exception):
        failed_after = self.state
        self.state = ExchangeState.ERROR_REDIRECT
        if isinstance(exc, MissingCodeError):
            logger.warning(f"Instagram auth error: {exc}")
            return
        detail = getattr(exc, "body", None) or str(exc)
        logger.error(
            f"Instagram auth error after {failed_after.value}: {type(exc).__name__}: {detail}"
        )


def handle_callback(settings: Settings, code: str | None) -> str:
    return CallbackExchange(settings, code).run()
