#!/usr/bin/env python3
"""
CLI tool for the Initializer Controller
Inspects pending initializers in the cluster and drives the running controller
"""

import asyncio
import json

import click
import requests
import yaml
from tabulate import tabulate

from accessor import KubernetesAccessor
from config import KubernetesConfig
from errors import DecodeError
from models import (
    INITIALIZER_CONTROLLER_API_VERSION,
    INITIALIZER_CONTROLLER_RESOURCE,
    InitializerController,
)
from pending import get_pending

STATUS_API_URL = "http://localhost:8080"


class InitializerControllerCLI:
    """CLI client for the controller's status API"""

    def __init__(self, base_url: str = STATUS_API_URL):
        self.base_url = base_url.rstrip("/")

    def _make_request(self, method: str, endpoint: str, **kwargs):
        """Make HTTP request to the API"""
        url = f"{self.base_url}{endpoint}"
        try:
            response = requests.request(method, url, **kwargs)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            click.echo(f"Error: {e}", err=True)
            if hasattr(e, "response") and e.response is not None:
                try:
                    error_detail = e.response.json()
                    click.echo(f"Detail: {error_detail}", err=True)
                except (ValueError, json.JSONDecodeError):
                    click.echo(f"Response: {e.response.text}", err=True)
            return None


def _list_objects(api_version: str, resource: str, include_uninitialized: bool):
    async def _run():
        async with KubernetesAccessor(KubernetesConfig.from_env()) as accessor:
            return await accessor.list(
                api_version, resource, include_uninitialized=include_uninitialized
            )

    return asyncio.run(_run())


def _echo_report(report):
    click.echo(f"Started: {report['started_at']}")
    click.echo(f"Finished: {report.get('finished_at') or 'N/A'}")
    click.echo(f"Synced: {', '.join(report['synced']) or '-'}")
    if report["skipped"]:
        click.echo(f"Skipped (decode failed): {', '.join(report['skipped'])}")
    click.echo(f"Initialized: {len(report['initialized'])}")
    for entry in report["initialized"]:
        click.echo(f"  - {entry}")
    if report["errors"]:
        rows = [[i + 1, err] for i, err in enumerate(report["errors"])]
        click.echo(tabulate(rows, headers=["#", "Error"], tablefmt="grid"))
    else:
        click.echo("\n✓ No errors")


@click.group()
def cli():
    """Initializer Controller CLI - inspect and drive pending initializers"""
    pass


@cli.command()
@click.option("--url", default=STATUS_API_URL, help="Status API base URL")
def status(url):
    """Show the controller's last reconciliation pass"""
    client = InitializerControllerCLI(url)

    result = client._make_request("GET", "/api/v1/status")

    if result:
        click.echo(f"Running: {result['running']}")
        click.echo(f"Syncing: {result['syncing']}")
        click.echo(f"Sync Interval: {result['sync_interval']}s")
        if result.get("last_pass"):
            click.echo("")
            _echo_report(result["last_pass"])
        else:
            click.echo("No reconciliation pass has completed yet")


@cli.command()
@click.option("--url", default=STATUS_API_URL, help="Status API base URL")
def sync(url):
    """Trigger a reconciliation pass now"""
    client = InitializerControllerCLI(url)

    result = client._make_request("POST", "/api/v1/sync")

    if result:
        click.echo("Reconciliation pass completed")
        _echo_report(result)


@cli.command()
@click.option(
    "--output", "-o", type=click.Choice(["table", "json", "yaml"]), default="table"
)
def configs(output):
    """List registered InitializerControllers"""
    records = _list_objects(
        INITIALIZER_CONTROLLER_API_VERSION,
        INITIALIZER_CONTROLLER_RESOURCE,
        include_uninitialized=False,
    )

    if output == "json":
        click.echo(json.dumps(records, indent=2))
        return
    if output == "yaml":
        click.echo(yaml.dump(records, default_flow_style=False))
        return

    rows = []
    for raw in records:
        try:
            ic = InitializerController.decode(raw)
        except DecodeError as e:
            rows.append([e.name, "-", "-", f"✗ {e}"])
            continue
        targets = ", ".join(f"{r}.{v}" for v, r in ic.target_resources())
        rows.append([ic.name, ic.initializer_name, targets or "-", ic.hook_url()])

    headers = ["Name", "Initializer", "Resources", "Hook"]
    click.echo(tabulate(rows, headers=headers, tablefmt="grid"))


@cli.command()
@click.argument("api_version")
@click.argument("resource")
@click.option(
    "--output", "-o", type=click.Choice(["table", "json", "yaml"]), default="table"
)
def pending(api_version, resource, output):
    """List uninitialized objects of a resource and their pending queues"""
    objects = [
        obj
        for obj in _list_objects(api_version, resource, include_uninitialized=True)
        if get_pending(obj)
    ]

    if output == "json":
        click.echo(json.dumps(objects, indent=2))
        return
    if output == "yaml":
        click.echo(yaml.dump(objects, default_flow_style=False))
        return

    if not objects:
        click.echo(f"No uninitialized {resource}")
        return

    rows = []
    for obj in objects:
        metadata = obj.get("metadata") or {}
        queue = [
            entry.get("name", "?") if isinstance(entry, dict) else "?"
            for entry in get_pending(obj)
        ]
        rows.append(
            [
                metadata.get("namespace", ""),
                metadata.get("name", ""),
                queue[0],
                " → ".join(queue),
            ]
        )

    headers = ["Namespace", "Name", "Next", "Pending"]
    click.echo(tabulate(rows, headers=headers, tablefmt="grid"))


if __name__ == "__main__":
    cli()
