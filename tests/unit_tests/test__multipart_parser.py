import asyncio

import pytest

from files_upload.errors import ParseError
from files_upload.multipart_parser import (
    _FormCollector,
    get_boundary,
    get_header,
    parse_multipart_form_data,
)
from files_upload.schemas import ParsedForm
from tests.consts import TEST_BOUNDARY
from tests.fixtures.multipart_events import (
    build_event,
    build_multipart_body,
    build_multipart_event,
)

JPEG_CONTENT = b"\xff\xd8\xff\xe0abc"


async def test_parse_fields_and_files():
    event = build_multipart_event(
        fields={"name": "foo", "album": "holiday"},
        files=[("photo", "cat.jpg", "image/jpeg", JPEG_CONTENT)],
    )

    form = await parse_multipart_form_data(event)

    assert form.fields == {"name": "foo", "album": "holiday"}
    assert len(form.files) == 1
    photo = form.files[0]
    assert photo.name == "photo"
    assert photo.filename == "cat.jpg"
    assert photo.headers["content-type"] == "image/jpeg"
    assert photo.content == JPEG_CONTENT


async def test_parse_keeps_file_order():
    event = build_multipart_event(
        files=[
            ("a", "first.png", "image/png", b"1"),
            ("b", "second.css", "text/css", b"2"),
            ("c", "third.json", "application/json", b"3"),
        ]
    )

    form = await parse_multipart_form_data(event)

    assert [file.filename for file in form.files] == ["first.png", "second.css", "third.json"]
    assert [file.content for file in form.files] == [b"1", b"2", b"3"]


async def test_parse_fields_only():
    form = await parse_multipart_form_data(build_multipart_event(fields={"name": "foo"}))

    assert form.fields == {"name": "foo"}
    assert form.files == []


async def test_parse_plain_text_body_and_lowercase_header():
    event = build_multipart_event(
        files=[("page", "index.html", "text/html", b"<html></html>")],
        base64_encoded=False,
        header_name="content-type",
    )

    form = await parse_multipart_form_data(event)

    assert form.files[0].content == b"<html></html>"


async def test_parse_file_part_without_content_type():
    event = build_multipart_event(files=[("doc", "notes", None, b"hello")])

    form = await parse_multipart_form_data(event)

    assert form.files[0].headers.get("content-type") is None
    assert form.files[0].content_type is None


async def test_parse_binary_content_with_crlf():
    content = b"line one\r\nline two\r\n--not-a-boundary\r\n\x00\x01"
    event = build_multipart_event(files=[("blob", "blob.json", "application/json", content)])

    form = await parse_multipart_form_data(event)

    assert form.files[0].content == content


async def test_parse_malformed_body_raises():
    event = build_event(b"this is definitely not a multipart body")

    with pytest.raises(ParseError):
        await parse_multipart_form_data(event)


async def test_parse_truncated_body_raises():
    body = build_multipart_body(files=[("photo", "cat.jpg", "image/jpeg", b"abc")])
    truncated = body[: body.rindex(f"--{TEST_BOUNDARY}--".encode())]

    with pytest.raises(ParseError):
        await parse_multipart_form_data(build_event(truncated))


async def test_parse_missing_content_type_raises():
    event = build_multipart_event(fields={"name": "foo"}, content_type=None)

    with pytest.raises(ParseError, match="Missing Content-Type"):
        await parse_multipart_form_data(event)


async def test_parse_non_multipart_content_type_raises():
    event = build_multipart_event(fields={"name": "foo"}, content_type="application/json")

    with pytest.raises(ParseError, match="Unsupported request content type"):
        await parse_multipart_form_data(event)


async def test_parse_invalid_base64_raises():
    event = build_multipart_event(fields={"name": "foo"})
    event["body"] = "***not base64***"

    with pytest.raises(ParseError, match="base64"):
        await parse_multipart_form_data(event)


def test_get_boundary():
    assert get_boundary(f'multipart/form-data; boundary="{TEST_BOUNDARY}"') == TEST_BOUNDARY.encode()

    with pytest.raises(ParseError, match="boundary"):
        get_boundary("multipart/form-data")


def test_get_header_is_case_insensitive_and_falls_back_to_multi_value_headers():
    event = {
        "headers": {"CONTENT-TYPE": "multipart/form-data; boundary=x"},
        "multiValueHeaders": {"X-Trace": ["first", "second"]},
    }

    assert get_header(event, "content-type") == "multipart/form-data; boundary=x"
    assert get_header(event, "x-trace") == "first"
    assert get_header(event, "authorization") is None
    assert get_header({"headers": None}, "content-type") is None


async def test_collector_settles_once_first_signal_wins():
    settled = asyncio.get_running_loop().create_future()
    collector = _FormCollector(settled)

    collector.on_end()
    collector.reject(ParseError("late failure"))

    assert isinstance(settled.result(), ParsedForm)


async def test_collector_ignores_completion_after_error():
    settled = asyncio.get_running_loop().create_future()
    collector = _FormCollector(settled)

    collector.reject(ParseError("boom"))
    collector.on_end()

    with pytest.raises(ParseError, match="boom"):
        settled.result()
