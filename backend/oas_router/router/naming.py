"""
Naming conventions for controllers and operations.

A contract path like /widgets/{id} maps to:
- resource:   Widgets
- controller: WidgetsController
- operation:  listWidgets / createWidgets / updateWidgets / deleteWidgets
"""

from typing import Any, Dict

CONTROLLER_SUFFIX = "Controller"

# Every other method (DELETE, PATCH, ...) maps to "delete"
OPERATION_NAMES = {
    'GET': 'list',
    'POST': 'create',
    'PUT': 'update',
}
FALLBACK_OPERATION_NAME = 'delete'


def resource_name(spec_path: str) -> str:
    """First path segment with its first character upper-cased."""
    resource = str(spec_path).split("/")[1]
    return resource[:1].upper() + resource[1:]


def default_controller_name(spec_path: str) -> str:
    return resource_name(spec_path) + CONTROLLER_SUFFIX


def default_operation_name(method: str) -> str:
    return OPERATION_NAMES.get(str(method).upper(), FALLBACK_OPERATION_NAME)


def default_operation_id(method: str, spec_path: str) -> str:
    return default_operation_name(method) + resource_name(spec_path)


def resolve_operation_id(operation: Dict[str, Any], method: str, spec_path: str) -> str:
    """
    Get the operationId declared in the contract, or generate one.

    Args:
        operation: Contract operation for the requested path/method
        method: Requested method (any case)
        spec_path: Requested path as shown in the contract: /resource/{parameter}
    """
    if 'operationId' in operation:
        return str(operation['operationId'])
    return default_operation_id(method, spec_path)
