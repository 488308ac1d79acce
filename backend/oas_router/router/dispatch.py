"""
OASRouter - dispatch a contract-matched request to its controller.

Per request, in order:
1. Resolve the controller name (override, <Resource>Controller, Default)
2. Load the controller module
3. Resolve the operationId (declared or generated)
4. Build the intercepted response
5. Invoke the handler: handler(request, response, next)

Steps 2 and 5 can fail per request (missing controller, missing handler).
Both end as a 500 error envelope; the process keeps serving.

Usage:
    router = OASRouter(RouterConfig(controllers_dir="controllers"))
    return router.dispatch(request, oas_doc, "/widgets/{id}")
"""

import functools
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from flask import Response, g
from werkzeug.exceptions import NotFound

from ..middleware.error_envelope import make_error_response
from .controllers import (
    ControllerLoader,
    ControllerLoadError,
    HandlerNotFound,
    find_handler,
    resolve_controller_name,
)
from .decision import check_response
from .interceptor import InterceptedResponse, ResponseSink
from .naming import resolve_operation_id
from .registry import RouterConfig, get_operation
from .validate import ResponseValidator

logger = logging.getLogger('oas_router.router')


@dataclass(frozen=True)
class DispatchFailed:
    """A request that cannot reach a handler."""
    code: str
    message: str
    status_code: int = 500

    def to_response(self) -> Response:
        response, status_code = make_error_response(
            code=self.code,
            message=self.message,
            status_code=self.status_code,
        )
        response.status_code = status_code
        return response


class Continuation:
    """
    The `next` passed to handlers.

    next() hands the request on (nothing else handles it here, so 404);
    next(error) fails the request with that error.
    """

    def __init__(self):
        self.called = False
        self.error: Optional[BaseException] = None

    def __call__(self, error: Optional[BaseException] = None) -> None:
        self.called = True
        self.error = error


class OASRouter:
    """
    Dispatches requests to controllers and validates what they send.

    Args:
        config: Router settings, fixed for the application's lifetime
        loader: Controller loader (defaults to one over config.controllers_dir)
        validator: Validation capability (defaults to jsonschema with config options)
    """

    def __init__(
        self,
        config: RouterConfig,
        loader: Optional[ControllerLoader] = None,
        validator: Optional[ResponseValidator] = None,
    ):
        self.config = config
        self.loader = loader or ControllerLoader(config.controllers_dir)
        self.validator = validator or ResponseValidator(
            ignore_unknown_formats=config.ignore_unknown_formats,
            assume_additional=config.assume_additional,
            timeout=config.validation_timeout,
        )

    def dispatch(self, req: Any, oas_doc: Dict[str, Any], spec_path: str) -> Response:
        """
        Run one request through its controller.

        Args:
            req: Incoming request (method, path)
            oas_doc: Contract document
            spec_path: Requested path as shown in the contract: /resource/{parameter}

        Returns:
            The Flask response to return from the view
        """
        method = req.method.lower()
        operation = get_operation(oas_doc, spec_path, method)

        controller_name = resolve_controller_name(operation, spec_path, req.path, self.loader)
        try:
            controller = self.loader.load(controller_name)
        except ControllerLoadError as e:
            logger.error(f"Controller not found: {e.location}")
            return DispatchFailed(
                code="CONTROLLER_NOT_FOUND",
                message=f"Controller not found: {controller_name}",
            ).to_response()

        operation_id = resolve_operation_id(operation, method, spec_path)
        logger.debug(
            f"Dispatching {method.upper()} {req.path} -> {controller_name}.{operation_id}"
        )

        handler = find_handler(controller, operation_id, controller_name)
        if isinstance(handler, HandlerNotFound):
            logger.error(handler.message)
            return DispatchFailed(code="HANDLER_NOT_FOUND", message=handler.message).to_response()

        sink = ResponseSink()
        checker = functools.partial(
            self._check,
            oas_doc=oas_doc,
            method=method,
            spec_path=spec_path,
        )
        res = InterceptedResponse(sink, checker, locals=g)
        next_ = Continuation()

        handler(req, res, next_)

        return self._finish(res, next_, controller_name, operation_id)

    def _check(self, res, send, content, *, oas_doc, method, spec_path) -> None:
        check_response(
            res,
            send,
            oas_doc,
            method,
            spec_path,
            content,
            validator=self.validator,
            mode=self.config.mode,
        )

    def _finish(
        self,
        res: InterceptedResponse,
        next_: Continuation,
        controller_name: str,
        operation_id: str,
    ) -> Response:
        if res.response is not None:
            return res.response

        if next_.error is not None:
            raise next_.error
        if next_.called:
            raise NotFound()

        logger.error(f"Handler {controller_name}.{operation_id} returned without sending a response")
        return DispatchFailed(
            code="NO_RESPONSE",
            message=f"Handler '{operation_id}' did not send a response",
        ).to_response()
