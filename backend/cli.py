#!/usr/bin/env python3
"""
CLI for the contract router

Commands:
    routes  - Show which controller and handler serve each contract operation
    serve   - Run the development server for a contract

Usage:
    python cli.py routes oas-doc.yaml --controllers controllers
    python cli.py serve oas-doc.yaml --port 8080 --strict

Examples:
    # Check every operation has a handler before deploying
    python cli.py routes oas-doc.yaml --json

    # Serve with non-conforming responses replaced by error bodies
    python cli.py serve oas-doc.yaml --strict
"""

import json
import sys

import click
import yaml

from config import Config, configure_logging


def load_contract(path):
    """Read a contract document (YAML or JSON) from disk."""
    with open(path, "r") as f:
        doc = yaml.safe_load(f)
    if not isinstance(doc, dict) or not isinstance(doc.get("paths"), dict):
        raise click.ClickException(f"{path} is not a contract document (no 'paths' mapping)")
    return doc


def build_routes(oas_doc, controllers_dir):
    """Resolve controller, operationId and handler for every operation."""
    from oas_router.router import (
        ControllerLoader,
        ControllerLoadError,
        HandlerNotFound,
        find_handler,
        iter_operations,
        resolve_controller_name,
        resolve_operation_id,
    )

    loader = ControllerLoader(controllers_dir)
    routes = []
    for spec_path, method, operation in iter_operations(oas_doc):
        controller_name = resolve_controller_name(operation, spec_path, spec_path, loader)
        operation_id = resolve_operation_id(operation, method, spec_path)
        try:
            controller = loader.load(controller_name)
            handler = find_handler(controller, operation_id, controller_name)
            problem = handler.message if isinstance(handler, HandlerNotFound) else None
        except ControllerLoadError as e:
            problem = str(e)
        routes.append({
            "path": spec_path,
            "method": method.upper(),
            "controller": controller_name,
            "operationId": operation_id,
            "ok": problem is None,
            "problem": problem,
        })
    return routes


@click.group()
@click.version_option(version="1.0.0", prog_name="oas-router")
@click.option("--log-level", default=None, help="Root log level (default: LOG_LEVEL or INFO)")
def cli(log_level):
    """Contract router CLI - inspect and serve contract-driven APIs."""
    configure_logging(log_level)


@cli.command("routes")
@click.argument("contract", type=click.Path(exists=True), default=Config.OAS_DOC_PATH)
@click.option("--controllers", "controllers_dir", default=Config.OAS_CONTROLLERS_DIR,
              type=click.Path(file_okay=False), help="Controllers directory")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def routes(contract, controllers_dir, output_json):
    """
    Show the dispatch table for a contract.

    CONTRACT: Path to the contract document (YAML or JSON)
    """
    oas_doc = load_contract(contract)
    table = build_routes(oas_doc, controllers_dir)

    if output_json:
        click.echo(json.dumps(table, indent=2))
    else:
        for route in table:
            line = f"  {route['method']:<7} {route['path']:<40} {route['controller']}.{route['operationId']}"
            if route["ok"]:
                click.secho(line, fg="green")
            else:
                click.secho(f"{line}  [{route['problem']}]", fg="red")

    missing = [r for r in table if not r["ok"]]
    if missing:
        if not output_json:
            click.echo()
            click.secho(f"{len(missing)} operation(s) without a handler", fg="red", bold=True)
        sys.exit(1)


@cli.command("serve")
@click.argument("contract", type=click.Path(exists=True), default=Config.OAS_DOC_PATH)
@click.option("--controllers", "controllers_dir", default=Config.OAS_CONTROLLERS_DIR,
              type=click.Path(file_okay=False), help="Controllers directory")
@click.option("--strict", is_flag=True, help="Replace responses that break the contract")
@click.option("--host", default="127.0.0.1")
@click.option("--port", default=5000, type=int)
def serve(contract, controllers_dir, strict, host, port):
    """
    Run the development server.

    CONTRACT: Path to the contract document (YAML or JSON)
    """
    from app import create_app

    overrides = {"OAS_CONTROLLERS_DIR": controllers_dir}
    if strict:
        overrides["CONTRACT_MODE"] = "strict"

    app = create_app(load_contract(contract), overrides)
    mode = app.extensions["oas_router"].config.mode.value
    click.echo(f"Serving {contract} ({mode} mode) on http://{host}:{port}")
    app.run(debug=Config.DEBUG, host=host, port=port)


if __name__ == '__main__':
    cli()
