"""
config.py — Environment configuration for the instafeed backend and client.

Values come from the process environment, with a local .env loaded first.
The backend reads them through get_settings(), which routes take as a FastAPI
dependency so tests can swap in their own Settings.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()

CALLBACK_PATH = "/auth/instagram/callback"
DEFAULT_STORAGE_PATH = Path.home() / ".instafeed" / "storage.json"


class Settings(BaseModel):
    frontend_url: str = "http://localhost:5173"
    base_url: str = "http://localhost:3000"
    instagram_client_id: str = ""
    instagram_client_secret: str = ""
    instagram_redirect_uri: Optional[str] = None
    host: str = "0.0.0.0"
    port: int = 3000

    @property
    def redirect_uri(self) -> str:
        """
        The single redirect URI used for both the authorize request and the
        code exchange. Instagram rejects the exchange if the two differ.
        """
        if self.instagram_redirect_uri:
            return self.instagram_redirect_uri
        return f"{self.base_url.rstrip('/')}{CALLBACK_PATH}"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            frontend_url=os.getenv("FRONTEND_URL", "http://localhost:5173").rstrip("/"),
            base_url=os.getenv("BASE_URL", "http://localhost:3000").rstrip("/"),
            instagram_client_id=os.getenv("INSTAGRAM_CLIENT_ID", ""),
            instagram_client_secret=os.getenv("INSTAGRAM_CLIENT_SECRET", ""),
            instagram_redirect_uri=os.getenv("INSTAGRAM_REDIRECT_URI") or None,
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", 3000)),
        )


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()


# Client side (the terminal feed viewer)
BACKEND_URL = os.getenv("INSTAFEED_BACKEND_URL", "http://localhost:3000").rstrip("/")
STORAGE_PATH = Path(os.getenv("INSTAFEED_STORAGE", str(DEFAULT_STORAGE_PATH))).expanduser()
