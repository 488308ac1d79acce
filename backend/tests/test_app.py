"""
Application factory tests: mounting, middleware, error envelopes.
"""

import pytest

from app import spec_path_to_rule


@pytest.mark.parametrize(
    "spec_path,rule",
    [
        ("/widgets", "/widgets"),
        ("/widgets/{id}", "/widgets/<id>"),
        ("/widgets/{widget-id}/parts/{partId}", "/widgets/<widget_id>/parts/<partId>"),
    ],
)
def test_spec_path_to_rule(spec_path, rule):
    assert spec_path_to_rule(spec_path) == rule


def test_every_contract_path_is_mounted(app):
    rules = {rule.rule: rule.methods for rule in app.url_map.iter_rules()}

    assert {"GET", "POST"} <= rules["/widgets"]
    assert {"GET", "PUT", "PATCH"} <= rules["/widgets/<id>"]
    assert "/broken" in rules
    assert "DELETE" not in rules["/widgets/<id>"]


def test_router_is_registered_on_app(app):
    router = app.extensions["oas_router"]
    assert router.config.mode.value == "warn"
    assert app.extensions["oas_doc"]["paths"]


def test_unknown_url_gets_error_envelope(client):
    response = client.get("/nothing-here")

    assert response.status_code == 404
    body = response.get_json()
    assert body["error"]["code"] == "NOT_FOUND"
    assert body["error"]["requestId"] == response.headers["X-Request-ID"]


def test_undeclared_method_is_405(client):
    response = client.delete("/widgets/1")
    assert response.status_code == 405
    assert response.get_json()["error"]["code"] == "METHOD_NOT_ALLOWED"


def test_head_is_not_dispatched_to_get(client):
    assert client.head("/widgets").status_code == 405


def test_request_id_generated_when_missing(client):
    response = client.get("/widgets")
    assert response.headers["X-Request-ID"]


def test_request_id_echoed(client):
    response = client.get("/widgets", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"


def test_request_id_on_dispatch_failure(client):
    response = client.get("/broken", headers={"X-Request-ID": "abc-123"})
    assert response.status_code == 500
    assert response.get_json()["error"]["requestId"] == "abc-123"


def test_cors_headers_present(client):
    response = client.get("/widgets", headers={"Origin": "https://example.com"})
    assert response.headers["Access-Control-Allow-Origin"] == "*"


def test_strict_mode_from_config(make_app):
    app = make_app(CONTRACT_MODE="strict")
    assert app.extensions["oas_router"].config.strict
