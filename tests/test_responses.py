import datetime
import json
import logging
import uuid

from tubely.database import Video
from tubely.responses import Response, error_response, json_response, with_no_cache


def test_json_response_sets_status_and_content_type():
    response = json_response(201, {"title": "clip", "count": 3})
    assert response.status == 201
    assert response.headers["Content-Type"] == "application/json"
    assert json.loads(response.body) == {"title": "clip", "count": 3}


def test_json_response_is_compact():
    response = json_response(200, {"a": 1})
    assert response.body == b'{"a":1}'


def test_json_response_escapes_html_characters():
    response = json_response(200, {"k": "<&>"})
    assert response.body == b'{"k":"\\u003c\\u0026\\u003e"}'
    assert json.loads(response.body) == {"k": "<&>"}


def test_json_response_keeps_unicode_as_utf8():
    response = json_response(200, ["caf\u00e9"])
    assert "caf\u00e9".encode("utf-8") in response.body
    assert json.loads(response.body) == ["caf\u00e9"]


def test_json_response_null_payload():
    assert json_response(200, None).body == b"null"


def test_json_response_uses_to_dict():
    video = Video(
        id=uuid.uuid4(),
        created_at=datetime.datetime(2024, 1, 2, 3, 4, 5, tzinfo=datetime.timezone.utc),
        updated_at=datetime.datetime(2024, 1, 2, 3, 4, 5, tzinfo=datetime.timezone.utc),
        title="clip",
        description="a clip",
        user_id=uuid.uuid4(),
    )
    response = json_response(200, [video])
    assert json.loads(response.body) == [video.to_dict()]


def test_json_response_unserialisable_payload_gives_500():
    response = json_response(200, {"x": object()})
    assert response.status == 500
    assert response.body == b""
    assert response.headers["Content-Type"] == "application/json"


def test_error_response_body():
    response = error_response(400, "Invalid ID", ValueError("bad"))
    assert response.status == 400
    assert json.loads(response.body) == {"error": "Invalid ID"}


def test_error_response_logs_server_errors(caplog):
    with caplog.at_level(logging.ERROR, logger="tubely.responses"):
        error_response(500, "boom")
    assert "Responding with 5XX error: boom" in caplog.text


def test_error_response_does_not_flag_client_errors(caplog):
    with caplog.at_level(logging.ERROR, logger="tubely.responses"):
        error_response(404, "missing")
    assert "5XX" not in caplog.text


def test_error_response_logs_the_error(caplog):
    with caplog.at_level(logging.ERROR, logger="tubely.responses"):
        error_response(400, "Invalid ID", ValueError("detail of failure"))
    assert "detail of failure" in caplog.text


def test_with_no_cache_adds_header_and_keeps_original():
    original = Response(200, {"Content-Type": "text/plain"}, b"hi")
    cached = with_no_cache(original)
    assert cached.headers["Cache-Control"] == "no-store"
    assert cached.headers["Content-Type"] == "text/plain"
    assert cached.body == b"hi"
    assert cached.status == 200
    assert "Cache-Control" not in original.headers