"""
Contract-driven dispatch package.

Provides controller/operation resolution, response interception and the
WARN/STRICT response checks.
"""

from .registry import (
    SchemaMode,
    RouterConfig,
    HTTP_METHODS,
    get_operation,
    get_response_spec,
    get_json_schema,
    iter_operations,
)
from .naming import (
    resource_name,
    default_controller_name,
    default_operation_name,
    default_operation_id,
    resolve_operation_id,
)
from .controllers import (
    DEFAULT_CONTROLLER,
    ControllerLoader,
    ControllerLoadError,
    ControllerNotFound,
    HandlerNotFound,
    find_handler,
    resolve_controller_name,
)
from .validate import ResponseValidator, ValidationMessage
from .interceptor import InterceptedResponse, ResponseSink, ResponseAlreadySent
from .decision import check_response
from .dispatch import OASRouter, DispatchFailed

__all__ = [
    'SchemaMode',
    'RouterConfig',
    'HTTP_METHODS',
    'get_operation',
    'get_response_spec',
    'get_json_schema',
    'iter_operations',
    'resource_name',
    'default_controller_name',
    'default_operation_name',
    'default_operation_id',
    'resolve_operation_id',
    'DEFAULT_CONTROLLER',
    'ControllerLoader',
    'ControllerLoadError',
    'ControllerNotFound',
    'HandlerNotFound',
    'find_handler',
    'resolve_controller_name',
    'ResponseValidator',
    'ValidationMessage',
    'InterceptedResponse',
    'ResponseSink',
    'ResponseAlreadySent',
    'check_response',
    'OASRouter',
    'DispatchFailed',
]
