"""
Response decision - what the client receives once a controller sends.

For the status code the controller set:

    declared?  schema?  valid?   WARN                      STRICT
    ---------  -------  ------   ------------------------  -----------------------------------
    no         -        -        warn, send original       error, send {message}
    yes        no       -        send original             send original
    yes        yes      no       warn, send original       error, send {message, content}, 400
    yes        yes      yes      send original             send original

`send` is always called exactly once. Violations never raise; they surface
as a log line and, in STRICT mode, a replaced body.
"""

import json
import logging
from typing import Any, Callable, Dict, List

from flask import g, has_app_context

from .interceptor import dumps
from .registry import SchemaMode, get_json_schema, get_operation, get_response_spec
from .validate import ResponseValidator, ValidationMessage

logger = logging.getLogger('oas_router.router.decision')

WRONG_CODE_MESSAGE = "Wrong response code: {code}"
WRONG_DATA_MESSAGE = "Wrong data in the response. "
STRICT_VIOLATION_STATUS = 400


def join_messages(messages: List[ValidationMessage]) -> str:
    """Join validation messages with '. ' separators."""
    return ". ".join(m.message for m in messages)


def check_response(
    response: Any,
    send: Callable[[str], Any],
    oas_doc: Dict[str, Any],
    method: str,
    spec_path: str,
    content: str,
    validator: ResponseValidator,
    mode: SchemaMode,
) -> None:
    """
    Check the payload a controller sent against the contract and forward it.

    Args:
        response: Response being sent; its status_code selects the contract
            response and is set to 400 on a STRICT schema violation
        send: The real send; receives the final body text
        oas_doc: Contract document
        method: Lower-cased request method
        spec_path: Requested path as shown in the contract: /resource/{parameter}
        content: Payload already serialized to JSON text
        validator: Validation capability
        mode: Enforcement mode
    """
    code = response.status_code
    logger.debug("Processing at check_response:")
    logger.debug(f"  -code: {code}")
    logger.debug(f"  -method: {method}")
    logger.debug(f"  -spec_path: {spec_path}")
    logger.debug(f"  -data: {content}")

    operation = get_operation(oas_doc, spec_path, method)
    response_spec = get_response_spec(operation, code)

    if response_spec is None:
        message = WRONG_CODE_MESSAGE.format(code=code)
        if mode == SchemaMode.STRICT:
            _log_violation(logging.ERROR, message, spec_path, method, code)
            send(dumps({"message": message}))
        else:
            _log_violation(logging.WARNING, message, spec_path, method, code)
            send(content)
        return

    schema = get_json_schema(response_spec)
    if schema is None:
        # Nothing declared for this status code, nothing to validate
        send(content)
        return

    # YAML contracts can carry dates (examples, defaults)
    logger.info(f"Schema to use for validation: {json.dumps(schema, default=str)}")
    data = json.loads(content)
    errors = validator.validate(data, schema, oas_doc)

    if not errors:
        send(content)
        return

    message = WRONG_DATA_MESSAGE + join_messages(errors)
    if mode == SchemaMode.STRICT:
        _log_violation(logging.ERROR, message, spec_path, method, code, errors)
        response.status_code = STRICT_VIOLATION_STATUS
        send(dumps({"message": message, "content": data}))
    else:
        _log_violation(logging.WARNING, message, spec_path, method, code, errors)
        send(content)


def _log_violation(
    level: int,
    message: str,
    spec_path: str,
    method: str,
    code: int,
    errors: List[ValidationMessage] = (),
) -> None:
    request_id = getattr(g, 'request_id', None) if has_app_context() else None
    logger.log(
        level,
        message,
        extra={
            "event": "contract_violation",
            "path": spec_path,
            "method": method,
            "status_code": code,
            "request_id": request_id,
            "details": [e.to_dict() for e in errors],
        }
    )
