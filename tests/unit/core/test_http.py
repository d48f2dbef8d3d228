"""Unit tests for the registry HTTP client."""

from unittest.mock import MagicMock, patch

import pytest
import requests
from updatekit.core.errors import RequestError, SerializationError
from updatekit.core.http import USER_AGENT, _get, _session, get_json


def response(status: int, payload=None, text: str = "") -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.ok = 200 <= status < 300
    resp.text = text
    if payload is None:
        resp.json.side_effect = ValueError("no JSON")
    else:
        resp.json.return_value = payload
    return resp


class TestGetJson:
    @pytest.mark.asyncio
    async def test_success(self) -> None:
        with patch("updatekit.core.http._get", return_value=response(200, {"crate": {}})) as mock_get:
            status, payload = await get_json("https://crates.io/api/v1/crates/serde", params={"q": "x"})
        assert (status, payload) == (200, {"crate": {}})
        mock_get.assert_called_once_with("https://crates.io/api/v1/crates/serde", {"q": "x"}, 15.0)

    @pytest.mark.asyncio
    async def test_error_status_has_no_payload(self) -> None:
        with patch("updatekit.core.http._get", return_value=response(404, {"errors": []})):
            assert await get_json("https://crates.io/api/v1/crates/nope") == (404, None)

    @pytest.mark.asyncio
    async def test_transport_failure(self) -> None:
        with patch("updatekit.core.http._get", side_effect=requests.ConnectionError("unreachable")):
            with pytest.raises(RequestError) as exc_info:
                await get_json("https://crates.io/api/v1/crates")
        assert exc_info.value.context["url"] == "https://crates.io/api/v1/crates"

    @pytest.mark.asyncio
    async def test_invalid_json(self) -> None:
        with patch("updatekit.core.http._get", return_value=response(200, None, "<html>")):
            with pytest.raises(SerializationError):
                await get_json("https://crates.io/api/v1/crates")


class TestSession:
    def test_session_sends_user_agent(self) -> None:
        with _session() as session:
            assert session.headers["User-Agent"] == USER_AGENT
            assert session.headers["Accept"] == "application/json"
        assert USER_AGENT.startswith("updatekit/")

    def test_get_goes_through_session(self) -> None:
        session = MagicMock()
        session.__enter__.return_value = session
        session.get.return_value = response(200, {})
        with patch("updatekit.core.http._session", return_value=session):
            resp = _get("https://crates.io/api/v1/crates", {"q": "serde"}, 5.0)

        assert resp is session.get.return_value
        session.get.assert_called_once_with(
            "https://crates.io/api/v1/crates", params={"q": "serde"}, timeout=5.0
        )

    def test_prepared_request_carries_user_agent(self) -> None:
        with _session() as session:
            prepared = session.prepare_request(requests.Request("GET", "https://crates.io/api/v1/crates"))
        assert prepared.headers["User-Agent"] == USER_AGENT
