"""
Controller resolution - which module and function serve an operation.

Resolution order for the controller module:
1. x-router-controller declared on the operation (used verbatim)
2. <Resource>Controller, if it can be loaded from the controllers directory
3. Default

Controllers are plain Python modules living in the controllers directory:

    controllers/
        WidgetsController.py     # def listWidgets(req, res, next): ...
        Default.py

Handlers are looked up by operationId. Dotted ids walk nested namespaces, so
"v2.listWidgets" finds `v2.listWidgets` inside the module.
"""

import hashlib
import importlib.util
import logging
import os
import sys
import threading
from dataclasses import dataclass
from functools import lru_cache
from types import ModuleType
from typing import Any, Callable, Dict, Optional, Union

from .naming import default_controller_name
from .registry import CONTROLLER_OVERRIDE_KEY

logger = logging.getLogger('oas_router.router.controllers')

DEFAULT_CONTROLLER = "Default"

# First loads run one at a time so a module body never executes twice
_load_lock = threading.RLock()


class ControllerLoadError(ImportError):
    """Raised when a controller module cannot be loaded."""

    def __init__(self, message: str, location: str):
        super().__init__(message)
        self.location = location


class ControllerNotFound(ControllerLoadError):
    """Raised when no module with the controller's name exists."""


@dataclass(frozen=True)
class HandlerNotFound:
    """Lookup result when an operationId does not lead to a callable."""
    operation_id: str
    controller: str
    missing: str

    @property
    def message(self) -> str:
        return (
            f"Handler '{self.operation_id}' not found in controller "
            f"'{self.controller}' (missing '{self.missing}')"
        )


Handler = Callable[..., Any]


def _controller_location(directory: str, name: str) -> str:
    return os.path.join(directory, name)


def controller_module_name(directory: str, name: str) -> str:
    """sys.modules key for a controller; loaders for different directories never share one."""
    digest = hashlib.sha256(directory.encode()).hexdigest()[:12]
    return f"oas_controllers.d{digest}.{name}"


@lru_cache(maxsize=None)
def _load_module(directory: str, name: str) -> ModuleType:
    location = _controller_location(directory, name)
    candidates = (
        location + ".py",
        os.path.join(location, "__init__.py"),
    )
    path = next((c for c in candidates if os.path.isfile(c)), None)
    if path is None:
        raise ControllerNotFound(f"No controller module at {location}", location)

    module_name = controller_module_name(directory, name)
    spec = importlib.util.spec_from_file_location(module_name, path)
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        sys.modules.pop(module_name, None)
        raise ControllerLoadError(f"Failed to load controller {location}: {e}", location) from e
    return module


class ControllerLoader:
    """
    Loads controller modules by name from one directory.

    Modules are cached for the process lifetime; failed loads are not cached,
    so a controller added later is picked up by the next probe.
    """

    def __init__(self, directory: str):
        self.directory = os.path.abspath(directory)

    def location(self, name: str) -> str:
        return _controller_location(self.directory, name)

    def load(self, name: str) -> ModuleType:
        """
        Load a controller module.

        Raises:
            ControllerNotFound: No module with that name exists
            ControllerLoadError: The module exists but failed to import
        """
        with _load_lock:
            return _load_module(self.directory, name)

    def exists(self, name: str) -> bool:
        """Probe for a controller by loading it. Never raises."""
        logger.debug(f"Probing controller {name} at {self.directory}")
        try:
            self.load(name)
            return True
        except ControllerLoadError:
            logger.info(f"The controller {name} doesn't exist at {self.directory}")
            return False


def resolve_controller_name(
    operation: Dict[str, Any],
    spec_path: str,
    request_path: str,
    loader: ControllerLoader,
) -> str:
    """
    Pick the controller name for an operation.

    The existence probe uses the literal request path; the name used is derived
    from the contract path. Both share the first segment unless the resource
    itself is a path parameter.
    """
    if CONTROLLER_OVERRIDE_KEY in operation:
        return operation[CONTROLLER_OVERRIDE_KEY]
    if loader.exists(default_controller_name(request_path)):
        return default_controller_name(spec_path)
    return DEFAULT_CONTROLLER


def find_handler(
    controller: Any,
    operation_id: str,
    controller_name: str = "",
) -> Union[Handler, HandlerNotFound]:
    """
    Walk a dotted operationId through a controller's namespace.

    Each segment is looked up as an attribute, or as a key when the current
    namespace is a mapping. The leaf must be callable.
    """
    context = controller
    for segment in operation_id.split("."):
        context = _lookup(context, segment)
        if context is None:
            return HandlerNotFound(operation_id, controller_name, segment)
    if not callable(context):
        return HandlerNotFound(operation_id, controller_name, operation_id.split(".")[-1])
    return context


def _lookup(namespace: Any, segment: str) -> Optional[Any]:
    if isinstance(namespace, dict):
        return namespace.get(segment)
    return getattr(namespace, segment, None)


def clear_controller_cache() -> None:
    """Forget loaded controllers (tests and hot-reload)."""
    _load_module.cache_clear()
