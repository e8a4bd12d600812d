"""
Tests for the Webflow API client
"""
import pytest
import requests
from unittest.mock import MagicMock

from codeloader.services.webflow import WebflowAPIError, WebflowClient, client_for_site


def make_response(status=200, body=None, text=""):
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 300
    response.reason = "Error"
    response.text = text
    response.content = b"{}" if body is not None else b""
    response.json.return_value = body
    return response


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def client(session):
    return WebflowClient("token-123", base_url="https://api.test/v2/", timeout=3.0, session=session)


class TestTransport:
    """Request plumbing and error mapping"""

    def test_sets_bearer_token(self, session, client):
        session.headers.update.assert_called_once()
        headers = session.headers.update.call_args[0][0]
        assert headers["Authorization"] == "Bearer token-123"

    def test_platform_error_code_preserved(self, session, client):
        session.request.return_value = make_response(
            409, {"code": "duplicate_registered_script", "message": "Script exists"}
        )

        with pytest.raises(WebflowAPIError) as exc_info:
            client.register_inline_script("site", source_code="x", display_name="n", version="1.0.0")

        assert exc_info.value.status_code == 409
        assert exc_info.value.is_duplicate_script
        assert exc_info.value.message == "Script exists"

    def test_non_json_error_body(self, session, client):
        response = make_response(500, None, text="upstream exploded")
        response.json.side_effect = ValueError("no json")
        session.request.return_value = response

        with pytest.raises(WebflowAPIError) as exc_info:
            client.get_page_custom_code("p1")

        assert exc_info.value.code is None
        assert exc_info.value.message == "upstream exploded"
        assert not exc_info.value.is_duplicate_script

    def test_timeout_is_mapped(self, session, client):
        session.request.side_effect = requests.Timeout()

        with pytest.raises(WebflowAPIError) as exc_info:
            client.list_pages("site")

        assert exc_info.value.code == "timeout"

    def test_network_error_is_mapped(self, session, client):
        session.request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(WebflowAPIError) as exc_info:
            client.list_pages("site")

        assert exc_info.value.code == "network_error"

    def test_uses_configured_timeout_and_base_url(self, session, client):
        session.request.return_value = make_response(200, {"scripts": []})

        client.get_site_custom_code("site-1")

        args, kwargs = session.request.call_args
        assert args == ("GET", "https://api.test/v2/sites/site-1/custom_code")
        assert kwargs["timeout"] == 3.0


class TestListPages:
    """Offset/limit pagination"""

    def test_follows_pagination(self, session, client):
        session.request.side_effect = [
            make_response(200, {"pages": [{"id": "a"}, {"id": "b"}], "pagination": {"total": 3}}),
            make_response(200, {"pages": [{"id": "c"}], "pagination": {"total": 3}}),
        ]

        pages = client.list_pages("site-1")

        assert [p["id"] for p in pages] == ["a", "b", "c"]
        offsets = [c.kwargs["params"]["offset"] for c in session.request.call_args_list]
        assert offsets == [0, 2]

    def test_stops_on_empty_batch(self, session, client):
        session.request.return_value = make_response(200, {"pages": [], "pagination": {"total": 10}})
        assert client.list_pages("site-1") == []
        assert session.request.call_count == 1


class TestCustomCode:
    """Binding merge behaviour"""

    def test_upsert_replaces_same_script_and_keeps_others(self, session, client):
        session.request.side_effect = [
            make_response(200, {"scripts": [
                {"id": "old", "location": "footer", "version": "1.0.0"},
                {"id": "s1", "location": "header", "version": "0.9.0"},
            ]}),
            make_response(200, {}),
        ]

        client.upsert_page_custom_code("page-1", "s1", "head", "1.0.0")

        put_call = session.request.call_args_list[1]
        assert put_call.args == ("PUT", "https://api.test/v2/pages/page-1/custom_code")
        assert put_call.kwargs["json"] == {"scripts": [
            {"id": "old", "location": "footer", "version": "1.0.0"},
            {"id": "s1", "location": "header", "version": "1.0.0"},
        ]}

    def test_body_maps_to_footer(self, session, client):
        session.request.side_effect = [make_response(200, {"scripts": []}), make_response(200, {})]

        client.upsert_site_custom_code("site-1", "s2", "body", "1.0.0")

        scripts = session.request.call_args_list[1].kwargs["json"]["scripts"]
        assert scripts == [{"id": "s2", "location": "footer", "version": "1.0.0"}]


class TestClientForSite:
    """Building a client from a stored site token"""

    def test_requires_token(self, app):
        site = MagicMock(access_token=None, external_site_id="wf-1")
        with pytest.raises(WebflowAPIError) as exc_info:
            client_for_site(site)
        assert exc_info.value.code == "not_authorized"

    def test_uses_app_config(self, app):
        site = MagicMock(access_token="tok", external_site_id="wf-1")
        client = client_for_site(site)
        assert client.base_url == app.config["WEBFLOW_API_BASE"].rstrip("/")
        assert client.timeout == app.config["WEBFLOW_TIMEOUT"]
