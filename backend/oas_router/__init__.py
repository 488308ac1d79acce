"""
oas_router - Contract-driven dispatch and response validation for Flask.

This package provides:
- Controller and operationId resolution from the contract document
- Response interception and schema validation (WARN / STRICT)
- Global middleware (request_id, error_envelope)
"""

from .router import OASRouter, RouterConfig, SchemaMode

__all__ = ['OASRouter', 'RouterConfig', 'SchemaMode']
