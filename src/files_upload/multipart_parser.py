"""
Decode API Gateway proxy events carrying multipart/form-data bodies.

The heavy lifting is done by python-multipart's streaming ``MultipartParser``.
It reports progress through callbacks; the end of the message and a decoding
failure are the two terminal signals. Both are funnelled into one
``asyncio.Future`` so the caller sees exactly one outcome, whichever signal
arrives first.
"""

import asyncio
import base64
import binascii
import logging
from typing import Any, Dict, List, Mapping, Optional

from python_multipart import MultipartParser
from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import parse_options_header

from files_upload.errors import ParseError
from files_upload.schemas import FileRecord, ParsedForm

logger = logging.getLogger(__name__)

MULTIPART_FORM_DATA = b"multipart/form-data"


def get_header(event: Mapping[str, Any], name: str) -> Optional[str]:
    """Case-insensitive header lookup on a proxy event.

    Falls back to ``multiValueHeaders`` (first value) when the single-value
    map does not carry the header.
    """
    name = name.lower()
    for key, value in (event.get("headers") or {}).items():
        if key.lower() == name and value is not None:
            return value
    for key, values in (event.get("multiValueHeaders") or {}).items():
        if key.lower() == name and values:
            return values[0]
    return None


def get_boundary(content_type: Optional[str]) -> bytes:
    """Extract the multipart boundary from a Content-Type header value."""
    if not content_type:
        raise ParseError("Missing Content-Type header")

    mime_type, params = parse_options_header(content_type)
    if mime_type.lower() != MULTIPART_FORM_DATA:
        raise ParseError(f'Unsupported request content type "{content_type}"')

    boundary = params.get(b"boundary")
    if not boundary:
        raise ParseError("Missing multipart boundary in Content-Type header")
    return boundary


def get_body_bytes(event: Mapping[str, Any]) -> bytes:
    """Return the raw request body, undoing API Gateway's base64 encoding."""
    body = event.get("body")
    if body is None:
        return b""

    if event.get("isBase64Encoded"):
        try:
            return base64.b64decode(body, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ParseError(f"Request body is not valid base64: {e}") from e

    if isinstance(body, bytes):
        return body
    return body.encode("utf-8")


class _FormCollector:
    """Accumulates parser callbacks into fields and file records."""

    def __init__(self, settled: asyncio.Future):
        self.settled = settled
        self.fields: Dict[str, str] = {}
        self.files: List[FileRecord] = []
        self._headers: Dict[str, bytes] = {}
        self._header_field = bytearray()
        self._header_value = bytearray()
        self._data = bytearray()

    def callbacks(self) -> Dict[str, Any]:
        return {
            "on_part_begin": self.on_part_begin,
            "on_header_field": self.on_header_field,
            "on_header_value": self.on_header_value,
            "on_header_end": self.on_header_end,
            "on_part_data": self.on_part_data,
            "on_part_end": self.on_part_end,
            "on_end": self.on_end,
        }

    # --- parser callbacks ---

    def on_part_begin(self) -> None:
        self._headers = {}
        self._header_field.clear()
        self._header_value.clear()
        self._data = bytearray()

    def on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field += data[start:end]

    def on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def on_header_end(self) -> None:
        name = bytes(self._header_field).decode("latin-1").strip().lower()
        self._headers[name] = bytes(self._header_value).strip()
        self._header_field.clear()
        self._header_value.clear()

    def on_part_data(self, data: bytes, start: int, end: int) -> None:
        self._data += data[start:end]

    def on_part_end(self) -> None:
        _, params = parse_options_header(self._headers.get("content-disposition", b""))
        name = params.get(b"name")
        name = name.decode("utf-8", errors="replace") if name is not None else None

        if b"filename" in params:
            headers = {
                key: value.decode("utf-8", errors="replace")
                for key, value in self._headers.items()
            }
            self.files.append(
                FileRecord(
                    name=name,
                    filename=params[b"filename"].decode("utf-8", errors="replace"),
                    headers=headers,
                    content=bytes(self._data),
                )
            )
        elif name is not None:
            self.fields[name] = bytes(self._data).decode("utf-8", errors="replace")
        else:
            logger.warning("Skipping multipart part without a field name")

    def on_end(self) -> None:
        self.resolve(ParsedForm(fields=self.fields, files=self.files))

    # --- settlement ---

    def resolve(self, form: ParsedForm) -> None:
        if self.settled.done():
            logger.debug("Ignoring completion signal, parse already settled")
            return
        self.settled.set_result(form)

    def reject(self, error: Exception) -> None:
        if self.settled.done():
            logger.debug(f"Ignoring error signal, parse already settled: {error}")
            return
        self.settled.set_exception(error)


async def parse_multipart_form_data(event: Mapping[str, Any]) -> ParsedForm:
    """
    Parse the fields and files out of a multipart/form-data proxy event.

    :param event: API Gateway proxy event with ``headers`` and ``body``.
    :return: the decoded form; files keep the order they appear in the body.
    :raises ParseError: when the body cannot be decoded as multipart/form-data.
    """
    boundary = get_boundary(get_header(event, "content-type"))
    body = get_body_bytes(event)

    settled = asyncio.get_running_loop().create_future()
    collector = _FormCollector(settled)
    parser = MultipartParser(boundary, callbacks=collector.callbacks())

    try:
        parser.write(body)
        parser.finalize()
    except MultipartParseError as e:
        collector.reject(ParseError(str(e)))

    # finalize() does not complain about a truncated message, so a body that
    # never reached the closing boundary only shows up as a missing on_end.
    if not settled.done():
        collector.reject(ParseError("Multipart body ended before the closing boundary"))

    try:
        form = await settled
    except ParseError as e:
        logger.error(f"Error parsing multipart body: {str(e)}")
        raise

    logger.info(f"Parsed multipart body: {len(form.fields)} field(s), {len(form.files)} file(s)")
    return form
