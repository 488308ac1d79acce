"""
Contract Registry - Read-only accessors over the contract document.

The contract document is the parsed OpenAPI-style mapping:

    {
        "paths": {
            "/widgets/{id}": {
                "get": {
                    "operationId": "getWidget",
                    "x-router-controller": "WidgetsController",
                    "responses": {
                        "200": {"content": {"application/json": {"schema": {...}}}},
                        "404": {"description": "Not found"},
                    },
                },
            },
        },
    }

It is shared by every request and never mutated here.

Also holds the router's enforcement settings:
- SchemaMode: WARN (log violations, send original) or STRICT (rewrite)
- RouterConfig: frozen settings injected into the dispatcher at startup
"""

import os
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


JSON_CONTENT_TYPE = "application/json"

# Keys of a path item that are operations (everything else is metadata)
HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")

CONTROLLER_OVERRIDE_KEY = "x-router-controller"


class SchemaMode(Enum):
    """Response contract enforcement mode."""
    WARN = "warn"      # Log violations, send the controller's payload untouched
    STRICT = "strict"  # Replace non-conforming payloads with an error body


def get_default_mode() -> SchemaMode:
    """Get schema mode from environment."""
    mode = os.environ.get('CONTRACT_MODE', 'warn').lower()
    return SchemaMode.STRICT if mode == 'strict' else SchemaMode.WARN


class RouterConfig(BaseModel):
    """
    Process-wide router settings.

    Built once at application startup and passed to OASRouter; frozen so no
    request can change the behaviour of another.
    """
    model_config = ConfigDict(frozen=True, extra='ignore')

    controllers_dir: str = "controllers"
    mode: SchemaMode = SchemaMode.WARN
    # Passed through to the validator, not interpreted by the router
    ignore_unknown_formats: bool = True
    # Objects declaring `properties` reject undeclared keys
    assume_additional: bool = True
    # Seconds to wait for a validation result; 0 validates inline
    validation_timeout: float = Field(default=5.0, ge=0)

    @property
    def strict(self) -> bool:
        return self.mode == SchemaMode.STRICT

    @classmethod
    def from_config(cls, config: Any) -> "RouterConfig":
        """
        Build router settings from a Config-style object (or Flask app.config).

        Args:
            config: Object exposing OAS_* attributes, or a mapping with OAS_* keys
        """
        def read(name, default):
            if isinstance(config, dict):
                return config.get(name, default)
            return getattr(config, name, default)

        mode = read('CONTRACT_MODE', None)
        if isinstance(mode, str):
            mode = SchemaMode.STRICT if mode.lower() == 'strict' else SchemaMode.WARN
        elif mode is None:
            mode = get_default_mode()

        return cls(
            controllers_dir=read('OAS_CONTROLLERS_DIR', 'controllers'),
            mode=mode,
            ignore_unknown_formats=read('OAS_IGNORE_UNKNOWN_FORMATS', True),
            assume_additional=read('OAS_ASSUME_ADDITIONAL', True),
            validation_timeout=read('OAS_VALIDATION_TIMEOUT', 5.0),
        )


def get_operation(oas_doc: Dict[str, Any], spec_path: str, method: str) -> Dict[str, Any]:
    """
    Get the operation for a path template and lower-cased method.

    Raises:
        KeyError: If the contract has no such path/method. Callers only ask for
            pairs Flask already matched, so this means a mounting bug.
    """
    return oas_doc['paths'][spec_path][method]


def get_response_spec(operation: Dict[str, Any], status_code: int) -> Optional[Dict[str, Any]]:
    """
    Get the declared response for a status code.

    Contracts loaded from YAML key responses by int, from JSON by string;
    both are accepted.
    """
    responses = operation.get('responses') or {}
    section = responses.get(str(status_code))
    if section is None:
        section = responses.get(status_code)
    return section


def get_json_schema(response_spec: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Get the application/json schema of a response, or None if nothing to check."""
    content = response_spec.get('content') or {}
    media = content.get(JSON_CONTENT_TYPE) or {}
    return media.get('schema')


def iter_operations(oas_doc: Dict[str, Any]) -> Iterator[Tuple[str, str, Dict[str, Any]]]:
    """Yield (path template, lower-cased method, operation) for the whole contract."""
    for spec_path, path_item in (oas_doc.get('paths') or {}).items():
        for method, operation in path_item.items():
            if method.lower() in HTTP_METHODS and isinstance(operation, dict):
                yield spec_path, method.lower(), operation
