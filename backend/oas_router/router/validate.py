"""
Response body validation against contract schemas.

Wraps jsonschema's Draft 4 validator (the dialect OpenAPI 3.0 schemas are
based on) behind one call:

    messages = validator.validate(data, schema, oas_doc)
    # [] when valid, otherwise [ValidationMessage(message=..., path=...)]

Options mirror the router settings:
- ignore_unknown_formats: when False, a `format` jsonschema has no checker
  for is reported instead of silently skipped
- assume_additional: objects that declare `properties` without
  `additionalProperties` reject undeclared keys
- timeout: seconds to wait for a result before reporting a failure. A
  running validation cannot be interrupted; on timeout its worker is left
  to finish and later validations go to a fresh pool

An unresolvable $ref is logged and validates anything; the rest of the
schema is still checked. Refs into the contract's
`components`/`definitions` resolve against the contract document.
"""

import copy
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Set

from jsonschema import Draft4Validator
from jsonschema.exceptions import SchemaError
from referencing import Registry, Resource
from referencing.exceptions import Unresolvable
from referencing.jsonschema import DRAFT4

logger = logging.getLogger('oas_router.router.validate')

# Root keys of the contract that $refs may point into
REF_ROOTS = ('components', 'definitions')

_SCHEMA_MAP_KEYWORDS = ('properties', 'patternProperties', 'definitions')
_SCHEMA_LIST_KEYWORDS = ('allOf', 'anyOf', 'oneOf')
_SCHEMA_KEYWORDS = ('not', 'additionalProperties', 'additionalItems')


@dataclass(frozen=True)
class ValidationMessage:
    """One validation error reported for a response body."""
    message: str
    path: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "path": self.path}


class ResponseValidator:
    """jsonschema-backed validation capability used by the decision engine."""

    def __init__(
        self,
        ignore_unknown_formats: bool = True,
        assume_additional: bool = True,
        timeout: float = 0,
        max_workers: int = 4,
    ):
        self.ignore_unknown_formats = ignore_unknown_formats
        self.assume_additional = assume_additional
        self.timeout = timeout
        self.format_checker = Draft4Validator.FORMAT_CHECKER
        self.max_workers = max_workers
        self._executor = self._new_executor() if timeout else None
        self._executor_lock = threading.Lock()

    def _new_executor(self) -> ThreadPoolExecutor:
        return ThreadPoolExecutor(
            max_workers=self.max_workers,
            thread_name_prefix="oas-validate",
        )

    def validate(
        self,
        data: Any,
        schema: Dict[str, Any],
        oas_doc: Optional[Dict[str, Any]] = None,
    ) -> List[ValidationMessage]:
        """
        Validate data against a schema.

        Returns:
            List of validation messages; empty when the data is valid
        """
        if self._executor is None:
            return self._validate(data, schema, oas_doc)

        executor = self._executor
        future = executor.submit(self._validate, data, schema, oas_doc)
        try:
            return future.result(timeout=self.timeout)
        except FutureTimeout:
            if not future.cancel():
                self._replace_executor(executor)
            logger.error(f"Response validation timed out after {self.timeout}s")
            return [ValidationMessage(f"Response validation timed out after {self.timeout}s")]

    def _replace_executor(self, stuck: ThreadPoolExecutor) -> None:
        # The stuck pool is dropped, not shut down: other threads may still be
        # submitting to it. Its idle workers exit once it is collected.
        with self._executor_lock:
            if self._executor is stuck:
                self._executor = self._new_executor()

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False)

    def _validate(
        self,
        data: Any,
        schema: Dict[str, Any],
        oas_doc: Optional[Dict[str, Any]],
    ) -> List[ValidationMessage]:
        root = self.prepare_schema(schema, oas_doc)
        messages = []

        if not self.ignore_unknown_formats:
            for fmt in sorted(self.unknown_formats(root)):
                messages.append(ValidationMessage(f"There is no validation function for format '{fmt}'"))

        try:
            validator = Draft4Validator(root, format_checker=self.format_checker)
            for error in validator.iter_errors(data):
                messages.append(ValidationMessage(
                    message=error.message,
                    path="/" + "/".join(str(p) for p in error.absolute_path),
                ))
        except Unresolvable as e:
            # Refs produced while resolving (remote documents) are not pre-checked
            logger.info(f"Ignoring unresolvable reference in response schema: {e}")
        except SchemaError as e:
            logger.error(f"Invalid response schema in contract: {e.message}")
            messages.append(ValidationMessage(f"Invalid response schema: {e.message}"))

        return messages

    def prepare_schema(
        self,
        schema: Dict[str, Any],
        oas_doc: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Build the root schema handed to jsonschema.

        The contract's ref roots are copied next to the schema so
        "#/components/schemas/Widget" resolves as in the contract document.
        """
        root = copy.deepcopy(schema)
        if oas_doc:
            for key in REF_ROOTS:
                if key in oas_doc and key not in root:
                    root[key] = copy.deepcopy(oas_doc[key])

        drop_unresolvable_refs(root)

        if self.assume_additional:
            for subschema in _walk_schemas(root):
                if 'properties' in subschema and 'additionalProperties' not in subschema:
                    subschema['additionalProperties'] = False
        return root

    def unknown_formats(self, schema: Dict[str, Any]) -> Set[str]:
        """Formats used in a schema that no checker is registered for."""
        known = set(self.format_checker.checkers)
        return {
            subschema['format']
            for subschema in _walk_schemas(schema)
            if isinstance(subschema.get('format'), str) and subschema['format'] not in known
        }


def _walk_schemas(schema: Any) -> Iterator[Dict[str, Any]]:
    """Yield a schema and every subschema reachable through schema keywords."""
    if not isinstance(schema, dict):
        return
    yield schema

    for keyword in _SCHEMA_MAP_KEYWORDS:
        for subschema in (schema.get(keyword) or {}).values():
            yield from _walk_schemas(subschema)
    for keyword in _SCHEMA_LIST_KEYWORDS:
        for subschema in schema.get(keyword) or []:
            yield from _walk_schemas(subschema)
    for keyword in _SCHEMA_KEYWORDS:
        yield from _walk_schemas(schema.get(keyword))

    items = schema.get('items')
    if isinstance(items, list):
        for subschema in items:
            yield from _walk_schemas(subschema)
    else:
        yield from _walk_schemas(items)

    components = schema.get('components')
    if isinstance(components, dict):
        for subschema in (components.get('schemas') or {}).values():
            yield from _walk_schemas(subschema)


def _iter_refs(node: Any) -> Iterator[Dict[str, Any]]:
    if isinstance(node, dict):
        if isinstance(node.get('$ref'), str):
            yield node
        for value in node.values():
            yield from _iter_refs(value)
    elif isinstance(node, list):
        for value in node:
            yield from _iter_refs(value)


def drop_unresolvable_refs(root: Dict[str, Any]) -> None:
    """
    Replace every $ref that does not resolve against root with {}.

    Only the broken reference stops constraining the data; sibling keywords
    and properties are still validated.
    """
    resolver = Registry().with_resource(
        "", Resource.from_contents(root, default_specification=DRAFT4)
    ).resolver()

    broken = []
    for node in _iter_refs(root):
        try:
            resolver.lookup(node['$ref'])
        except Unresolvable:
            broken.append(node)

    for node in broken:
        logger.info(f"Ignoring unresolvable reference in response schema: {node['$ref']}")
        node.clear()
