"""
Root pytest configuration for backend tests.

Provides:
- A widgets contract document exercising every dispatch path
- A temporary controllers directory matching that contract
- Shared fixtures (make_app, app, client)
"""

import copy
import sys
import textwrap
from pathlib import Path

# Add backend directory to Python path so imports like
# `from app import create_app` and `from config import Config` work
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

import pytest

from oas_router.router.controllers import clear_controller_cache


WIDGET_SCHEMA = {
    "type": "object",
    "required": ["id"],
    "properties": {
        "id": {"type": "number"},
        "name": {"type": "string"},
    },
}

CONTRACT = {
    "openapi": "3.0.0",
    "info": {"title": "Widgets", "version": "1.0.0"},
    "paths": {
        "/widgets": {
            "get": {
                "responses": {
                    "200": {
                        "description": "All widgets",
                        "content": {
                            "application/json": {
                                "schema": {
                                    "type": "array",
                                    "items": {"$ref": "#/components/schemas/Widget"},
                                }
                            }
                        },
                    },
                    "500": {"description": "Server error"},
                }
            },
            "post": {
                "responses": {
                    "201": {"description": "Created"},
                }
            },
        },
        "/widgets/{id}": {
            "parameters": [{"name": "id", "in": "path", "required": True}],
            "get": {
                "operationId": "getWidget",
                "responses": {
                    200: {
                        "description": "One widget",
                        "content": {"application/json": {"schema": WIDGET_SCHEMA}},
                    },
                    500: {"description": "Server error"},
                },
            },
            "put": {
                "operationId": "v2.updateWidget",
                "x-router-controller": "AdminController",
                "responses": {
                    "200": {"description": "Updated"},
                },
            },
            "patch": {
                "responses": {
                    "200": {"description": "Patched"},
                },
            },
        },
        "/gadgets": {
            "get": {
                "responses": {
                    "200": {"description": "All gadgets"},
                }
            }
        },
        "/broken": {
            "get": {
                "x-router-controller": "MissingController",
                "responses": {
                    "200": {"description": "Never reached"},
                },
            }
        },
        "/orphans": {
            "get": {
                "responses": {
                    "200": {"description": "No handler anywhere"},
                }
            }
        },
    },
    "components": {
        "schemas": {
            "Widget": WIDGET_SCHEMA,
        }
    },
}

CONTROLLERS = {
    "WidgetsController.py": '''
        def listWidgets(req, res, next):
            res.send([{"id": 1, "name": "sprocket"}])


        def createWidgets(req, res, next):
            res.status(201).send({"id": 2})


        def getWidget(req, res, next):
            widget_id = res.locals.path_params["id"]
            if widget_id == "bad":
                res.send({"id": "x"})
            elif widget_id == "missing":
                res.status(404).send({})
            elif widget_id == "boom":
                next(RuntimeError("boom"))
            elif widget_id == "skip":
                next()
            elif widget_id == "silent":
                return
            else:
                res.send({"id": int(widget_id), "name": "sprocket"})


        def deleteWidgets(req, res, next):
            res.send({"deleted": True})
    ''',
    "AdminController.py": '''
        class _V2:
            @staticmethod
            def updateWidget(req, res, next):
                res.send({"updated": True})


        v2 = _V2()
    ''',
    "Default.py": '''
        def listGadgets(req, res, next):
            res.send([{"gadget": 1}])
    ''',
}


@pytest.fixture
def oas_doc():
    """Fresh copy of the widgets contract."""
    return copy.deepcopy(CONTRACT)


@pytest.fixture
def controllers_dir(tmp_path):
    """Controllers directory matching the widgets contract."""
    directory = tmp_path / "controllers"
    directory.mkdir()
    for filename, source in CONTROLLERS.items():
        (directory / filename).write_text(textwrap.dedent(source))
    yield directory
    clear_controller_cache()


@pytest.fixture
def make_app(oas_doc, controllers_dir):
    """Build a test app; keyword args override Flask config."""
    from app import create_app

    def _make(**overrides):
        config = {
            "OAS_CONTROLLERS_DIR": str(controllers_dir),
            "CONTRACT_MODE": "warn",
            "OAS_VALIDATION_TIMEOUT": 0,
        }
        config.update(overrides)
        app = create_app(oas_doc, config)
        app.config['TESTING'] = True
        return app

    return _make


@pytest.fixture
def app(make_app):
    """Create test Flask application (WARN mode)."""
    return make_app()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def strict_client(make_app):
    """Test client for an app in STRICT mode."""
    return make_app(CONTRACT_MODE="strict").test_client()
