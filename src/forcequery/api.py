from __future__ import annotations

import logging
import time
from typing import Iterator, List, Optional
from urllib.parse import quote

import requests
import urllib3
from urllib3.exceptions import InsecureRequestWarning

from .auth import session_from_config
from .decoding import PageEnvelope, Record, decode_page
from .env_loader import load_env_files
from .exceptions import DecodeError, ForceError, ServiceError, TransportError
from .session import ForceConfig, SessionContext

_logger = logging.getLogger(__name__)

# Ensure .env is loaded for library use as well (e.g. scripts importing ForceClient)
load_env_files(quiet=True)

RETRY_STATUSES = (429, 500, 502, 503, 504)


# ----------------------------------------------------------------------
# Paginated query engine
# ----------------------------------------------------------------------
class QueryEngine:
    """Follow nextRecordsUrl continuations and collect every record.

    One blocking GET is outstanding at a time; the next page's URL is only
    known once the current page is decoded. The first error on any page
    aborts the whole fetch and no partial result is returned.
    """

    def __init__(
        self,
        session: SessionContext,
        *,
        http: Optional[requests.Session] = None,
        verify_ssl: bool = True,
        timeout: float = 30.0,
        debug: bool = False,
        max_retries: int = 0,
        backoff: float = 0.8,
    ) -> None:
        self.session = session
        self.http = http or requests.Session()
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self.debug = debug
        self.max_retries = max_retries
        self.backoff = backoff

    @classmethod
    def from_config(
        cls,
        session: SessionContext,
        cfg: ForceConfig,
        http: Optional[requests.Session] = None,
    ) -> QueryEngine:
        return cls(
            session,
            http=http,
            verify_ssl=cfg.verify_ssl,
            timeout=cfg.timeout,
            debug=cfg.debug,
            max_retries=cfg.max_retries,
        )

    # --------------------------- Public methods -----------------------

    def query_path(self, soql: str, *, include_deleted: bool = False) -> str:
        """Relative path of the first page for a SOQL statement."""
        resource = "queryAll" if include_deleted else "query"
        q = quote(soql, safe="")
        return f"services/data/{self.session.api_path_version}/{resource}/?q={q}"

    def fetch_page(self, continuation: str) -> PageEnvelope:
        """Fetch and decode exactly one page; raise on a service error."""
        url = self.session.url_for(continuation)
        r = self._get(url)

        if r.status_code >= 400:
            # Salesforce still sends an <Errors> body with 4xx responses.
            try:
                page = decode_page(r.content)
            except DecodeError:
                page = None
            if page is not None and page.error is not None:
                raise ServiceError(page.error.code, page.error.message)
            raise TransportError(
                f"HTTP {r.status_code} for {url}", status_code=r.status_code, url=url
            )

        page = decode_page(r.content)
        if page.error is not None:
            raise ServiceError(page.error.code, page.error.message)
        _logger.debug(
            "Decoded %d records from %s (more=%s)",
            len(page.records),
            url,
            bool(page.next_reference),
        )
        return page

    def iter_pages(self, continuation: str) -> Iterator[PageEnvelope]:
        """Yield pages in server order until no continuation remains."""
        page = self.fetch_page(continuation)
        yield page
        while page.next_reference:
            page = self.fetch_page(page.next_reference)
            yield page

    def query_more(self, continuation: str) -> List[Record]:
        """Return every record reachable from a continuation, in page order."""
        records: List[Record] = []
        pages = 0
        for page in self.iter_pages(continuation):
            records.extend(page.records)
            pages += 1
        _logger.info("Fetched %d records in %d page(s)", len(records), pages)
        return records

    def query(self, soql: str, *, include_deleted: bool = False) -> List[Record]:
        """Run a SOQL query and materialize all of its pages."""
        return self.query_more(self.query_path(soql, include_deleted=include_deleted))

    def query_iter(self, soql: str, *, include_deleted: bool = False) -> Iterator[Record]:
        """Yield records lazily, one page request at a time."""
        for page in self.iter_pages(self.query_path(soql, include_deleted=include_deleted)):
            yield from page.records

    # --------------------------- HTTP wrapper -------------------------

    def _get(self, url: str) -> requests.Response:
        """GET with bearer auth; retries only when max_retries > 0."""
        headers = self.session.auth_headers()
        attempts = self.max_retries + 1

        if self.debug:
            _logger.info("GET %s", url)

        for attempt in range(1, attempts + 1):
            try:
                r = self.http.request(
                    "GET",
                    url,
                    headers=headers,
                    timeout=self.timeout,
                    verify=self.verify_ssl,
                )
            except requests.RequestException as e:
                _logger.warning("Request error (attempt %d/%d): %s", attempt, attempts, e)
                if attempt == attempts:
                    raise TransportError(f"Request to {url} failed: {e}", url=url) from e
                time.sleep(self.backoff * attempt)
                continue

            if r.status_code in RETRY_STATUSES and attempt < attempts:
                _logger.warning("HTTP %s -> retrying %d/%d", r.status_code, attempt, attempts)
                time.sleep(self.backoff * attempt)
                continue

            if self.debug:
                _logger.info("%s", r.text)
            return r
        raise TransportError("Exceeded maximum retries.", url=url)


# ----------------------------------------------------------------------
# Function-style entry points
# ----------------------------------------------------------------------
def fetch_page(session: SessionContext, continuation: str, **opts) -> PageEnvelope:
    """Fetch ONE page only; no continuation is followed.

    Use query_more() for the complete multi-page result. Options are those
    of QueryEngine.
    """
    return QueryEngine(session, **opts).fetch_page(continuation)


def query_more(session: SessionContext, continuation: str, **opts) -> List[Record]:
    """Fetch every page starting at a nextRecordsUrl (or query path)."""
    return QueryEngine(session, **opts).query_more(continuation)


# ----------------------------------------------------------------------
# Main API client
# ----------------------------------------------------------------------
class ForceClient:
    """Salesforce REST query client configured from ForceConfig / SF_* env vars."""

    def __init__(self, cfg: Optional[ForceConfig] = None) -> None:
        self.cfg = cfg or ForceConfig.from_env()
        self.http = requests.Session()
        self.session: Optional[SessionContext] = None
        self._engine: Optional[QueryEngine] = None

    def connect(self) -> SessionContext:
        """Authenticate (or reuse a configured token) and prepare the engine."""
        self.session = session_from_config(self.cfg, http=self.http)
        self._engine = QueryEngine.from_config(self.session, self.cfg, http=self.http)
        if not self.cfg.verify_ssl:
            # Process-wide, and only when verification is explicitly off.
            urllib3.disable_warnings(InsecureRequestWarning)
            _logger.warning("TLS certificate verification is disabled")
        _logger.info(
            "Connected to Salesforce instance=%s api=%s",
            self.session.base_url,
            self.session.api_version,
        )
        return self.session

    @property
    def engine(self) -> QueryEngine:
        if self._engine is None:
            raise ForceError("Not connected; call connect() first.")
        return self._engine

    def query(self, soql: str, *, include_deleted: bool = False) -> List[Record]:
        return self.engine.query(soql, include_deleted=include_deleted)

    def query_more(self, continuation: str) -> List[Record]:
        return self.engine.query_more(continuation)

    def query_iter(self, soql: str, *, include_deleted: bool = False) -> Iterator[Record]:
        return self.engine.query_iter(soql, include_deleted=include_deleted)

    def query_frame(self, soql: str, *, include_deleted: bool = False):
        """Run a query and return the records as a pandas DataFrame."""
        from .frame import records_to_frame

        return records_to_frame(self.query(soql, include_deleted=include_deleted))
