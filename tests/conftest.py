from typing import Dict, Iterable, Optional
from unittest.mock import MagicMock

import pytest

from forcequery.session import SessionContext


@pytest.fixture(autouse=True)
def clean_sf_env(monkeypatch):
    """Keep a developer's real SF_* settings out of the tests."""
    import os

    for name in list(os.environ):
        if name.startswith("SF_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def session_ctx():
    return SessionContext(
        credential="00DFAKE-TOKEN",
        base_url="https://na1.salesforce.com/",
        api_version="35.0",
    )


def _records_xml(records: Iterable[Dict[str, str]]) -> str:
    parts = []
    for rec in records:
        fields = "".join(f"<{k}>{v}</{k}>" for k, v in rec.items())
        parts.append(f'<records type="Account">{fields}</records>')
    return "".join(parts)


@pytest.fixture
def xml_page():
    """Build a QueryResult XML body."""

    def build(records=(), next_url: Optional[str] = None) -> str:
        nxt = f"<nextRecordsUrl>{next_url}</nextRecordsUrl>" if next_url else ""
        done = "false" if next_url else "true"
        return (
            '<?xml version="1.0" encoding="UTF-8"?>'
            f"<QueryResult><done>{done}</done>{nxt}{_records_xml(records)}"
            "<totalSize>0</totalSize></QueryResult>"
        )

    return build


@pytest.fixture
def xml_error():
    def build(code: str, message: str) -> str:
        return (
            '<?xml version="1.0" encoding="UTF-8"?>'
            f"<Errors><Error><errorCode>{code}</errorCode>"
            f"<message>{message}</message></Error></Errors>"
        )

    return build


@pytest.fixture
def make_response():
    """Fake requests.Response carrying a text body."""

    def build(body: str, status: int = 200):
        r = MagicMock()
        r.status_code = status
        r.content = body.encode("utf-8")
        r.text = body
        return r

    return build
