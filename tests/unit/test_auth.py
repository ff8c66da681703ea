"""Tests for the OAuth password-grant login."""

from unittest.mock import MagicMock

import pytest
import requests

from forcequery.auth import oauth_login, session_from_config
from forcequery.exceptions import (
    AuthenticationError,
    ConfigurationError,
    DecodeError,
    MissingCredentialsError,
    TransportError,
)
from forcequery.session import ForceConfig


@pytest.fixture
def cfg():
    return ForceConfig(
        username="user@example.com",
        password="pw+token",
        client_id="cid",
        client_secret="csecret",
    )


def _json_response(payload, status=200):
    r = MagicMock()
    r.status_code = status
    r.json.return_value = payload
    r.text = str(payload)
    return r


class TestOAuthLogin:
    def test_successful_login(self, cfg):
        http = MagicMock()
        http.post.return_value = _json_response(
            {"access_token": "00DNEW", "instance_url": "https://na1.salesforce.com"}
        )

        session = oauth_login(cfg, http=http)

        assert session.credential == "00DNEW"
        assert session.base_url == "https://na1.salesforce.com/"
        assert session.api_version == "35.0"

        args, kwargs = http.post.call_args
        assert args[0] == "https://login.salesforce.com/services/oauth2/token"
        assert kwargs["data"] == {
            "grant_type": "password",
            "client_id": "cid",
            "client_secret": "csecret",
            "username": "user@example.com",
            "password": "pw+token",
        }

    def test_error_description_raises(self, cfg):
        http = MagicMock()
        http.post.return_value = _json_response(
            {"error": "invalid_grant", "error_description": "authentication failure"}, status=400
        )

        with pytest.raises(AuthenticationError, match="authentication failure"):
            oauth_login(cfg, http=http)

    def test_old_api_version_rejected(self, cfg):
        cfg.api_version = "19.0"
        http = MagicMock()

        with pytest.raises(ConfigurationError, match="earliest supported API version is 20.0"):
            oauth_login(cfg, http=http)

        http.post.assert_not_called()

    def test_missing_credentials(self):
        with pytest.raises(MissingCredentialsError) as exc_info:
            oauth_login(ForceConfig(username="u"), http=MagicMock())

        assert exc_info.value.missing == ["SF_PASSWORD", "SF_CLIENT_ID", "SF_CLIENT_SECRET"]

    def test_network_failure(self, cfg):
        http = MagicMock()
        http.post.side_effect = requests.ConnectionError("no route")

        with pytest.raises(TransportError, match="no route"):
            oauth_login(cfg, http=http)

    def test_non_json_body(self, cfg):
        http = MagicMock()
        resp = MagicMock()
        resp.status_code = 502
        resp.json.side_effect = ValueError("no json")
        http.post.return_value = resp

        with pytest.raises(DecodeError):
            oauth_login(cfg, http=http)


class TestSessionFromConfig:
    def test_reuses_configured_token(self):
        http = MagicMock()
        cfg = ForceConfig(access_token="00DEXISTING", instance_url="https://na2.salesforce.com/")

        session = session_from_config(cfg, http=http)

        assert session.credential == "00DEXISTING"
        assert session.base_url == "https://na2.salesforce.com/"
        http.post.assert_not_called()

    def test_falls_back_to_login(self, cfg):
        http = MagicMock()
        http.post.return_value = _json_response(
            {"access_token": "00DNEW", "instance_url": "https://na1.salesforce.com"}
        )

        session = session_from_config(cfg, http=http)

        assert session.credential == "00DNEW"
        assert http.post.call_count == 1
