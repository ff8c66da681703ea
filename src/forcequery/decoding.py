"""Decode Salesforce REST XML responses into a fixed page envelope.

A query page looks like::

    <QueryResult>
        <done>false</done>
        <nextRecordsUrl>/services/data/v35.0/query/01gD0000002HU6KIAW-2000</nextRecordsUrl>
        <records type="Account" url="/services/data/v35.0/sobjects/Account/001...">
            <Id>001D000000IqhSLIAZ</Id>
            <Name>Acme</Name>
        </records>
        <totalSize>2350</totalSize>
    </QueryResult>

and a rejected request looks like::

    <Errors>
        <Error>
            <errorCode>INVALID_SESSION_ID</errorCode>
            <message>Session expired or invalid</message>
        </Error>
    </Errors>
"""

from __future__ import annotations

import locale
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from .exceptions import DecodeError

_logger = logging.getLogger(__name__)

XSI_NIL = "{http://www.w3.org/2001/XMLSchema-instance}nil"

# Values are text, None for nil, or a list of child records for sub-queries.
Record = Dict[str, Any]


@dataclass(frozen=True)
class ErrorInfo:
    code: str
    message: str


@dataclass(frozen=True)
class PageEnvelope:
    """One decoded response: its records, continuation and error, if any."""

    records: List[Record] = field(default_factory=list)
    next_reference: Optional[str] = None
    error: Optional[ErrorInfo] = None


def normalize_text(value: Union[str, bytes], encoding: Optional[str] = None):
    """Best-effort conversion of a UTF-8 field value into the locale encoding.

    Returns the original value untouched when the conversion fails, so a
    single odd field never aborts a page.
    """
    enc = encoding or locale.getpreferredencoding(False)
    try:
        text = value.decode("utf-8") if isinstance(value, bytes) else value
        return text.encode(enc).decode(enc)
    except (UnicodeError, LookupError) as err:
        _logger.debug("Keeping raw field value; cannot convert to %s: %s", enc, err)
        return value


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child(elem: ET.Element, name: str) -> Optional[ET.Element]:
    for c in elem:
        if _local(c.tag) == name:
            return c
    return None


def _text(elem: Optional[ET.Element]) -> Optional[str]:
    if elem is None:
        return None
    value = "".join(elem.itertext()).strip()
    return value or None


def _is_subquery(elem: ET.Element) -> bool:
    return any(_local(c.tag) == "records" for c in elem)


def _flatten(elem: ET.Element, prefix: str = "") -> Iterator[Tuple[str, Any]]:
    for c in elem:
        name = prefix + _local(c.tag)
        if c.get(XSI_NIL) == "true":
            yield name, None
        elif _is_subquery(c):
            # Parent-child sub-query: <Contacts><records>..</records>..</Contacts>
            yield name, [decode_record(r) for r in c if _local(r.tag) == "records"]
        elif len(c):
            # Relationship fields, e.g. <Owner><Name>..</Name></Owner> -> Owner.Name
            yield from _flatten(c, name + ".")
        else:
            yield name, normalize_text(c.text or "")


def decode_record(elem: ET.Element) -> Record:
    """Turn one <records> element into a field-name -> value mapping."""
    return dict(_flatten(elem))


def _decode_error(root: ET.Element) -> Optional[ErrorInfo]:
    node = root if _local(root.tag) == "Error" else _child(root, "Error")
    if node is None:
        return None
    code = _text(_child(node, "errorCode"))
    message = _text(_child(node, "message"))
    # Both parts must be present; a half-filled node is not treated as an error.
    if code and message:
        return ErrorInfo(normalize_text(code), normalize_text(message))
    if code or message:
        _logger.warning("Ignoring incomplete Error node (errorCode=%r, message=%r)", code, message)
    return None


def decode_page(body: Union[str, bytes]) -> PageEnvelope:
    """Parse a response body into a PageEnvelope.

    Raises DecodeError when the body is not well-formed XML.
    """
    if not body or not body.strip():
        raise DecodeError("Empty response body")
    try:
        root = ET.fromstring(body)
    except ET.ParseError as err:
        raise DecodeError(f"Response is not valid XML: {err}") from err

    error = _decode_error(root)
    if error is not None:
        return PageEnvelope(error=error)

    records = [decode_record(r) for r in root if _local(r.tag) == "records"]
    next_ref = _text(_child(root, "nextRecordsUrl"))
    return PageEnvelope(
        records=records,
        next_reference=normalize_text(next_ref) if next_ref else None,
    )
