try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

import json
import time
from urllib.parse import parse_qs, unquote, urlparse

import httpx
import pytest

from app.clients.office365_auth import OAuthProfileFetchError, OAuthTokenExchangeError
from app.clients.session import SessionStore
from app.main import app
from app.models.credential import CredentialRecord
from app.schemas.auth import GraphProfile

CALLBACK_URL = "/api/integrations/office365calendar/callback"
ADD_URL = "/api/integrations/office365calendar/add"


class DummyOAuthClient:
    def __init__(self) -> None:
        self.codes: list[str] = []
        self.access_tokens: list[str] = []
        self.states: list[str | None] = []
        self.token_payload: dict = {
            "access_token": "T",
            "refresh_token": "R",
            "token_type": "Bearer",
            "expires_in": 3600,
        }
        self.token_error: OAuthTokenExchangeError | None = None
        self.profile: dict = {"mail": "a@b.com", "userPrincipalName": "a@b.onmicrosoft.com"}
        self.profile_error: Exception | None = None

    def build_authorization_url(self, state: str | None = None) -> str:
        self.states.append(state)
        return f"https://login.example.com/authorize?state={state}"

    async def exchange_code(self, code: str) -> dict:
        self.codes.append(code)
        if self.token_error is not None:
            raise self.token_error
        return dict(self.token_payload)

    async def fetch_profile(self, access_token: str) -> GraphProfile:
        self.access_tokens.append(access_token)
        if self.profile_error is not None:
            raise self.profile_error
        return GraphProfile.model_validate(self.profile)


class DummyCredentialStore:
    def __init__(self) -> None:
        self.items: list[CredentialRecord] = []

    def create(self, *, type: str, key: dict, user_id: str) -> CredentialRecord:
        record = CredentialRecord(id=len(self.items) + 1, type=type, key=key, user_id=user_id)
        self.items.append(record)
        return record


@pytest.fixture()
def callback_overrides():
    from app import dependencies

    dummy_client = DummyOAuthClient()
    dummy_store = DummyCredentialStore()
    session_store = SessionStore(secret_key="test-session-secret")

    app.dependency_overrides.update(
        {
            dependencies.get_office365_oauth_client: lambda: dummy_client,
            dependencies.get_credential_store: lambda: dummy_store,
            dependencies.get_session_store: lambda: session_store,
        }
    )

    yield dummy_client, dummy_store, session_store

    app.dependency_overrides.clear()


def _client(session_store: SessionStore | None = None, user_id: str = "user-1") -> httpx.AsyncClient:
    cookies = {}
    if session_store is not None:
        cookies[session_store.cookie_name] = session_store.issue(user_id)
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
        cookies=cookies,
    )


@pytest.mark.anyio
async def test_callback_requires_session(callback_overrides):
    dummy_client, dummy_store, _ = callback_overrides

    async with _client() as client:
        response = await client.get(CALLBACK_URL, params={"code": "abc"})

    assert response.status_code == 401
    assert response.json() == {"message": "You must be logged in to do this"}
    assert dummy_client.codes == []
    assert dummy_store.items == []


@pytest.mark.anyio
async def test_callback_rejects_forged_session_cookie(callback_overrides):
    _, dummy_store, _ = callback_overrides
    forged = SessionStore(secret_key="someone-else").issue("user-1")

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
        cookies={"session": forged},
    ) as client:
        response = await client.get(CALLBACK_URL, params={"code": "abc"})

    assert response.status_code == 401
    assert dummy_store.items == []


@pytest.mark.anyio
async def test_callback_rejects_session_without_user(callback_overrides):
    _, _, session_store = callback_overrides

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
        cookies={"session": session_store.encode({"expires": "soon"})},
    ) as client:
        response = await client.get(CALLBACK_URL, params={"code": "abc"})

    assert response.status_code == 401


@pytest.mark.anyio
async def test_callback_requires_code(callback_overrides):
    dummy_client, _, session_store = callback_overrides

    async with _client(session_store) as client:
        response = await client.get(CALLBACK_URL)

    assert response.status_code == 400
    assert response.json() == {"message": "No code returned"}
    assert dummy_client.codes == []


@pytest.mark.anyio
async def test_callback_rejects_repeated_code(callback_overrides):
    dummy_client, _, session_store = callback_overrides

    async with _client(session_store) as client:
        response = await client.get(CALLBACK_URL, params=[("code", "a"), ("code", "b")])

    assert response.status_code == 400
    assert response.json() == {"message": "No code returned"}
    assert dummy_client.codes == []


@pytest.mark.anyio
async def test_callback_stores_credential_and_redirects(callback_overrides):
    dummy_client, dummy_store, session_store = callback_overrides

    async with _client(session_store, user_id="user-42") as client:
        response = await client.get(CALLBACK_URL, params={"code": "oauth-code"})
    now = time.time()

    assert response.status_code == 307
    assert response.headers["location"] == "/integrations"
    assert dummy_client.codes == ["oauth-code"]
    assert dummy_client.access_tokens == ["T"]

    assert len(dummy_store.items) == 1
    record = dummy_store.items[0]
    assert record.type == "office365_calendar"
    assert record.user_id == "user-42"
    assert record.key["email"] == "a@b.com"
    assert record.key["access_token"] == "T"
    assert record.key["refresh_token"] == "R"
    assert record.key["token_type"] == "Bearer"
    assert "expires_in" not in record.key
    assert abs(record.key["expiry_date"] - (now + 3600)) <= 1


@pytest.mark.anyio
async def test_callback_falls_back_to_user_principal_name(callback_overrides):
    dummy_client, dummy_store, session_store = callback_overrides
    dummy_client.profile = {"mail": None, "userPrincipalName": "a@b.onmicrosoft.com"}

    async with _client(session_store) as client:
        response = await client.get(CALLBACK_URL, params={"code": "oauth-code"})

    assert response.status_code == 307
    assert dummy_store.items[0].key["email"] == "a@b.onmicrosoft.com"


@pytest.mark.anyio
async def test_callback_redirects_to_return_to_from_state(callback_overrides):
    _, dummy_store, session_store = callback_overrides
    state = json.dumps({"returnTo": "/apps/installed"})

    async with _client(session_store) as client:
        response = await client.get(
            CALLBACK_URL, params={"code": "oauth-code", "state": state}
        )

    assert response.status_code == 307
    assert response.headers["location"] == "/apps/installed"
    assert len(dummy_store.items) == 1


@pytest.mark.anyio
async def test_callback_ignores_unreadable_state(callback_overrides):
    _, dummy_store, session_store = callback_overrides

    async with _client(session_store) as client:
        response = await client.get(
            CALLBACK_URL, params={"code": "oauth-code", "state": "not-json"}
        )

    assert response.status_code == 307
    assert response.headers["location"] == "/integrations"
    assert len(dummy_store.items) == 1


@pytest.mark.anyio
async def test_callback_redirects_with_error_when_exchange_fails(callback_overrides):
    dummy_client, dummy_store, session_store = callback_overrides
    dummy_client.token_error = OAuthTokenExchangeError({"error": "invalid_grant"}, 400)

    async with _client(session_store) as client:
        response = await client.get(CALLBACK_URL, params={"code": "stale-code"})

    assert response.status_code == 307
    assert unquote(response.headers["location"]) == (
        '/integrations?error={"error":"invalid_grant"}'
    )
    assert dummy_client.access_tokens == []
    assert dummy_store.items == []


@pytest.mark.anyio
async def test_callback_does_not_store_when_profile_fetch_fails(callback_overrides):
    dummy_client, dummy_store, session_store = callback_overrides
    dummy_client.profile_error = OAuthProfileFetchError("Graph unavailable")

    async with _client(session_store) as client:
        with pytest.raises(OAuthProfileFetchError):
            await client.get(CALLBACK_URL, params={"code": "oauth-code"})

    assert dummy_store.items == []


@pytest.mark.anyio
async def test_callback_inserts_a_new_credential_each_time(callback_overrides):
    dummy_client, dummy_store, session_store = callback_overrides

    async with _client(session_store) as client:
        first = await client.get(CALLBACK_URL, params={"code": "code-1"})
        second = await client.get(CALLBACK_URL, params={"code": "code-2"})

    assert first.status_code == second.status_code == 307
    assert dummy_client.codes == ["code-1", "code-2"]
    assert [item.user_id for item in dummy_store.items] == ["user-1", "user-1"]
    assert [item.id for item in dummy_store.items] == [1, 2]


@pytest.mark.anyio
async def test_add_requires_session(callback_overrides):
    dummy_client, _, _ = callback_overrides

    async with _client() as client:
        response = await client.get(ADD_URL)

    assert response.status_code == 401
    assert response.json() == {"message": "You must be logged in to do this"}
    assert dummy_client.states == []


@pytest.mark.anyio
async def test_add_returns_authorization_url_with_state(callback_overrides):
    dummy_client, _, session_store = callback_overrides

    async with _client(session_store) as client:
        response = await client.get(ADD_URL, params={"returnTo": "/apps/installed"})

    assert response.status_code == 200
    url = response.json()["url"]
    assert url.startswith("https://login.example.com/authorize")
    state = parse_qs(urlparse(url).query)["state"][0]
    assert json.loads(state) == {"returnTo": "/apps/installed"}
    assert json.loads(dummy_client.states[-1]) == {"returnTo": "/apps/installed"}


@pytest.mark.anyio
async def test_add_without_return_to_omits_state(callback_overrides):
    dummy_client, _, session_store = callback_overrides

    async with _client(session_store) as client:
        response = await client.get(ADD_URL)

    assert response.status_code == 200
    assert dummy_client.states == [None]


@pytest.mark.anyio
async def test_healthcheck():
    async with _client() as client:
        response = await client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
