"""
Request ID middleware - Correlate router log lines with responses.

Every request gets g.request_id, taken from X-Request-ID when the client sends
one. Contract violation logs carry it, and it is echoed back on the response,
including replaced and error bodies.
"""

import uuid

from flask import Flask, g, request

REQUEST_ID_HEADER = 'X-Request-ID'


def setup_request_id_middleware(app: Flask) -> None:
    """
    Set up request ID middleware on Flask app.

    Args:
        app: Flask application instance
    """

    @app.before_request
    def inject_request_id():
        g.request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())

    @app.after_request
    def add_request_id_header(response):
        request_id = getattr(g, 'request_id', None)
        if request_id and REQUEST_ID_HEADER not in response.headers:
            response.headers[REQUEST_ID_HEADER] = request_id
        return response
