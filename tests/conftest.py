import httpx
import pytest
from fastapi.testclient import TestClient

from instafeed import instagram_service
from instafeed.config import Settings, get_settings
from instafeed.instagram_models import TokenSession
from instafeed.main import app
from instafeed.session import TokenStore

TEST_SETTINGS = Settings(
    frontend_url="http://frontend.test",
    base_url="http://api.test",
    instagram_client_id="client-123",
    instagram_client_secret="secret-456",
)


class FakeInstagram:
    """Canned Instagram responses keyed by (method, url without query). Records every request."""

    def __init__(self):
        self.routes = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, url: str, json=None, status_code: int = 200, exc: Exception | None = None):
        self.routes[(method, url)] = (status_code, json, exc)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, _bare_url(request))
        if key not in self.routes:
            return httpx.Response(404, json={"error": {"message": f"no route for {key}"}})
        status_code, body, exc = self.routes[key]
        if exc is not None:
            raise exc
        return httpx.Response(status_code, json=body)

    def calls(self, method: str, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and _bare_url(r) == url]


def _bare_url(request: httpx.Request) -> str:
    return f"{request.url.scheme}://{request.url.host}{request.url.path}"


@pytest.fixture
def instagram(monkeypatch):
    fake = FakeInstagram()
    monkeypatch.setattr(
        instagram_service,
        "_client",
        lambda: httpx.Client(transport=httpx.MockTransport(fake.handler)),
    )
    return fake


@pytest.fixture
def client():
    app.dependency_overrides[get_settings] = lambda: TEST_SETTINGS
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def store(tmp_path):
    return TokenStore(tmp_path / "storage.json")


@pytest.fixture
def session(store):
    s = TokenSession(access_token="long-tok")
    store.set(s.model_dump(mode="json"))
    return s
