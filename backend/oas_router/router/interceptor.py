"""
Response interception - route the controller's payload through validation.

Controllers never touch the real response. They get an InterceptedResponse:

    def listWidgets(req, res, next):
        res.status(200).send([{"id": 1}])

send() serializes the payload, marks it as JSON and hands the text to the
checker together with the real sink. The checker decides what actually goes
out and forwards it exactly once.
"""

import json
from typing import Any, Callable, Optional

from flask import Response, current_app, has_app_context
from werkzeug.datastructures import Headers

JSON_CONTENT_TYPE_HEADER = "application/json;charset=utf-8"

Checker = Callable[["InterceptedResponse", Callable[[str], Response], str], None]


class ResponseAlreadySent(RuntimeError):
    """Raised when a response is sent a second time."""


def dumps(data: Any) -> str:
    """Serialize a payload the way Flask's jsonify does when an app is active."""
    if has_app_context():
        return current_app.json.dumps(data)
    return json.dumps(data)


class ResponseSink:
    """The real transport side: turns the final body into a Flask Response."""

    def __init__(self):
        self.response: Optional[Response] = None

    @property
    def sent(self) -> bool:
        return self.response is not None

    def send(self, body: str, status_code: int, headers: Headers) -> Response:
        if self.sent:
            raise ResponseAlreadySent("Response already sent")
        self.response = Response(body, status=status_code, headers=Headers(headers))
        return self.response


class InterceptedResponse:
    """
    Response object handed to controllers.

    Attributes:
        status_code: Status to send; controllers set it before send()
        headers: Extra headers for the outgoing response
        locals: Per-request values (Flask's g)
    """

    def __init__(self, sink: ResponseSink, checker: Checker, locals: Any = None):
        self.status_code = 200
        self.headers = Headers()
        self.locals = locals
        self._sink = sink
        self._checker = checker
        self._intercepted = False

    @property
    def sent(self) -> bool:
        """True once send() was called, even if the sink has not been reached yet."""
        return self._intercepted

    @property
    def response(self) -> Optional[Response]:
        return self._sink.response

    def status(self, code: int) -> "InterceptedResponse":
        self.status_code = int(code)
        return self

    def set_header(self, name: str, value: str) -> "InterceptedResponse":
        self.headers[name] = value
        return self

    def send(self, data: Any = None) -> None:
        """
        Send a payload through the contract checker.

        Content-Type is set to JSON before the check runs, so replaced bodies
        go out as JSON too.

        Raises:
            ResponseAlreadySent: If the response was already sent
        """
        if self._intercepted:
            raise ResponseAlreadySent("Response already sent")
        self._intercepted = True

        content = dumps(data)
        self.headers['Content-Type'] = JSON_CONTENT_TYPE_HEADER
        self._checker(self, self._forward, content)

    def _forward(self, body: str) -> Response:
        return self._sink.send(body, self.status_code, self.headers)
