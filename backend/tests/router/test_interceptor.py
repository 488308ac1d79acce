"""
Response interception tests.
"""

import json

import pytest
from flask import Flask

from oas_router.router.interceptor import (
    JSON_CONTENT_TYPE_HEADER,
    InterceptedResponse,
    ResponseAlreadySent,
    ResponseSink,
)


class RecordingChecker:
    """Checker that records what it was given and forwards unchanged."""

    def __init__(self, forward=True):
        self.forward = forward
        self.calls = []

    def __call__(self, res, send, content):
        self.calls.append((res.headers.get('Content-Type'), content))
        if self.forward:
            send(content)


def test_send_serializes_and_forwards_once():
    sink = ResponseSink()
    checker = RecordingChecker()
    res = InterceptedResponse(sink, checker)

    res.status(201).send({"id": 1})

    assert checker.calls == [(JSON_CONTENT_TYPE_HEADER, json.dumps({"id": 1}))]
    assert sink.response.status_code == 201
    assert sink.response.headers['Content-Type'] == JSON_CONTENT_TYPE_HEADER
    assert json.loads(sink.response.get_data(as_text=True)) == {"id": 1}


def test_content_type_set_before_checker_runs():
    checker = RecordingChecker(forward=False)
    res = InterceptedResponse(ResponseSink(), checker)

    res.send([1, 2])

    assert checker.calls[0][0] == JSON_CONTENT_TYPE_HEADER


def test_strings_are_serialized_as_json():
    checker = RecordingChecker()
    InterceptedResponse(ResponseSink(), checker).send("hello")
    assert checker.calls[0][1] == '"hello"'


def test_second_send_raises():
    res = InterceptedResponse(ResponseSink(), RecordingChecker())
    res.send({})
    with pytest.raises(ResponseAlreadySent):
        res.send({})


def test_sink_accepts_only_one_body():
    sink = ResponseSink()
    sink.send("{}", 200, {})
    with pytest.raises(ResponseAlreadySent):
        sink.send("{}", 200, {})


def test_status_set_by_checker_is_used():
    def checker(res, send, content):
        res.status_code = 400
        send('{"message": "replaced"}')

    sink = ResponseSink()
    InterceptedResponse(sink, checker).send({"id": "x"})

    assert sink.response.status_code == 400
    assert sink.response.get_json() == {"message": "replaced"}


def test_extra_headers_reach_the_response():
    sink = ResponseSink()
    res = InterceptedResponse(sink, RecordingChecker())
    res.set_header('Location', '/widgets/1').send({})
    assert sink.response.headers['Location'] == '/widgets/1'


def test_uses_app_json_provider_inside_app_context():
    """Inside an app, payloads serialize like jsonify (sorted keys)."""
    app = Flask(__name__)
    checker = RecordingChecker()

    with app.app_context():
        InterceptedResponse(ResponseSink(), checker).send({"b": 1, "a": 2})

    assert checker.calls[0][1] == app.json.dumps({"b": 1, "a": 2})
    assert checker.calls[0][1].index('"a"') < checker.calls[0][1].index('"b"')
