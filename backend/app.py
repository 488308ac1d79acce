"""
Flask Application Factory - Contract-driven routing

Every path in the contract document becomes a URL rule. Requests are handed
to OASRouter, which finds the controller, runs it and checks what it sends
against the contract:

    /widgets/{id}  ->  rule /widgets/<id>  ->  WidgetsController.getWidget

The contract document arrives already parsed (see cli.py for reading it from
a file).
"""

import re
from typing import Any, Dict, Optional

from flask import Flask, g, request
from flask_cors import CORS
from werkzeug.exceptions import MethodNotAllowed

from config import Config
from oas_router.router import OASRouter, RouterConfig, iter_operations
from oas_router.middleware import setup_error_handlers, setup_request_id_middleware

_PATH_PARAM = re.compile(r"\{([^}/]+)\}")


def spec_path_to_rule(spec_path: str) -> str:
    """
    Convert a contract path template to a Flask URL rule.

    /widgets/{id} -> /widgets/<id>; parameter names are reduced to
    identifier characters (Flask rule variables must be identifiers).
    """
    return _PATH_PARAM.sub(
        lambda m: "<" + re.sub(r"\W", "_", m.group(1)) + ">",
        spec_path,
    )


def create_app(oas_doc: Dict[str, Any], config_overrides: Optional[Dict[str, Any]] = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    CORS(app,
         resources={r"/*": {"origins": app.config.get('CORS_ORIGINS', '*')}},
         allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
         expose_headers=["X-Request-ID"],
         supports_credentials=False)

    # Request ID injection for log correlation
    setup_request_id_middleware(app)

    # Error envelopes for 404/405 and unhandled controller errors
    setup_error_handlers(app)

    router = OASRouter(RouterConfig.from_config(app.config))
    app.extensions['oas_router'] = router
    app.extensions['oas_doc'] = oas_doc

    mount_contract(app, oas_doc, router)
    return app


def mount_contract(app: Flask, oas_doc: Dict[str, Any], router: OASRouter) -> None:
    """Register one URL rule per contract path, with the methods it declares."""
    methods_by_path: Dict[str, list] = {}
    for spec_path, method, _operation in iter_operations(oas_doc):
        methods_by_path.setdefault(spec_path, []).append(method.upper())

    for spec_path, methods in methods_by_path.items():
        app.add_url_rule(
            spec_path_to_rule(spec_path),
            endpoint=f"oas:{spec_path}",
            view_func=_make_view(oas_doc, spec_path, router),
            methods=methods,
        )
        app.logger.debug(f"Mounted {spec_path} [{', '.join(methods)}]")


def _make_view(oas_doc: Dict[str, Any], spec_path: str, router: OASRouter):
    declared = {
        method for path, method, _ in iter_operations(oas_doc) if path == spec_path
    }

    def view(**path_params):
        # Flask routes HEAD to GET views; only methods the contract declares dispatch
        if request.method.lower() not in declared:
            raise MethodNotAllowed(valid_methods=sorted(m.upper() for m in declared))

        g.oas_doc = oas_doc
        g.requested_spec_path = spec_path
        g.path_params = path_params
        return router.dispatch(request, oas_doc, spec_path)

    return view
