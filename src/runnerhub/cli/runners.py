"""Command-line client for the runnerhub API."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

import httpx
from pydantic import TypeAdapter

from ..common.observability import configure_logging
from ..common.schemas import GitLabRunner
from ..glconfig import ConfigDocument, RunnerRecord

HTTP_COMMANDS = {"list", "show", "create", "delete"}
LOG_LEVEL = "WARNING"

_RUNNER_LIST = TypeAdapter(list[GitLabRunner])


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage GitLab Runner registrations")
    parser.add_argument("--base-url", help="runnerhub API base URL")
    parser.add_argument("--token", help="Bearer token for authentication")

    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List registered runners")
    list_parser.add_argument("--json", action="store_true", help="Output raw JSON")

    show_parser = subparsers.add_parser("show", help="Show one runner")
    show_parser.add_argument("uuid", help="Runner UUID")

    create_parser = subparsers.add_parser("create", help="Register a runner")
    create_parser.add_argument("--id", type=int, required=True, help="GitLab runner id")
    create_parser.add_argument("--url", required=True, help="GitLab instance URL")
    create_parser.add_argument("--token", dest="runner_token", required=True, help="Runner authentication token")
    create_parser.add_argument("--image", required=True, help="Default Docker image for jobs")
    create_parser.add_argument("--name", help="Runner name; generated when omitted")

    delete_parser = subparsers.add_parser("delete", help="Remove a runner")
    delete_parser.add_argument("uuid", help="Runner UUID")

    render_parser = subparsers.add_parser("render", help="Render config.toml from a JSON list of runners")
    render_parser.add_argument("--input", type=Path, required=True, help="JSON file with an array of runners")
    render_parser.add_argument("--output", type=Path, help="Write to this path instead of stdout")

    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command in HTTP_COMMANDS and (not args.base_url or not args.token):
        parser.error(f"--base-url and --token are required for '{args.command}'")
    return args


def _client(base_url: str, token: str) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=base_url.rstrip("/"),
        headers={"Authorization": f"Bearer {token}"},
        timeout=10.0,
    )


async def fetch_runners(base_url: str, token: str) -> list[dict[str, Any]]:
    async with _client(base_url, token) as client:
        response = await client.get("/gitlab-runners/list")
        response.raise_for_status()
        return response.json()


async def fetch_runner(base_url: str, token: str, runner_uuid: str) -> dict[str, Any]:
    async with _client(base_url, token) as client:
        response = await client.get(f"/gitlab-runners/{runner_uuid}")
        response.raise_for_status()
        return response.json()


async def create_runner(base_url: str, token: str, payload: dict[str, Any]) -> dict[str, Any]:
    async with _client(base_url, token) as client:
        response = await client.post("/gitlab-runners", json=payload)
        response.raise_for_status()
        return response.json()


async def delete_runner(base_url: str, token: str, runner_uuid: str) -> dict[str, Any]:
    async with _client(base_url, token) as client:
        response = await client.delete(f"/gitlab-runners/{runner_uuid}")
        response.raise_for_status()
        return response.json()


def render_config(input_path: Path, output_path: Optional[Path] = None) -> bytes:
    """Render ``config.toml`` for the runners listed in ``input_path``, without a server."""

    runners = _RUNNER_LIST.validate_json(input_path.read_bytes())
    document = ConfigDocument.builder().with_runners(RunnerRecord.from_entity(runner) for runner in runners).build()
    if output_path is not None:
        document.write(output_path)
    return document.render()


def print_table(rows: list[dict[str, Any]]) -> None:
    headers = ["uuid", "id", "name", "url", "docker_image"]
    widths = {header: len(header) for header in headers}
    normalized: list[dict[str, str]] = []

    for row in rows:
        normalized_row = {header: str(row.get(header) or "-") for header in headers}
        for key, value in normalized_row.items():
            widths[key] = max(widths[key], len(value))
        normalized.append(normalized_row)

    print("  ".join(key.ljust(widths[key]) for key in headers))
    print("  ".join("-" * widths[key] for key in headers))
    for row in normalized:
        print("  ".join(row[key].ljust(widths[key]) for key in headers))


async def run(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    # stdout carries command output only; logs go to stderr.
    configure_logging("runnerhub.cli", LOG_LEVEL, "plain")
    if args.command == "list":
        runners = await fetch_runners(args.base_url, args.token)
        if args.json:
            print(json.dumps(runners, indent=2))
        else:
            print_table(runners)
    elif args.command == "show":
        print(json.dumps(await fetch_runner(args.base_url, args.token, args.uuid), indent=2))
    elif args.command == "create":
        payload: dict[str, Any] = {
            "id": args.id,
            "url": args.url,
            "token": args.runner_token,
            "docker_image": args.image,
        }
        if args.name:
            payload["name"] = args.name
        print(json.dumps(await create_runner(args.base_url, args.token, payload), indent=2))
    elif args.command == "delete":
        deleted = await delete_runner(args.base_url, args.token, args.uuid)
        print(f"Deleted runner {deleted.get('uuid')} ({deleted.get('name')})")
    elif args.command == "render":
        rendered = render_config(args.input, args.output)
        if args.output is None:
            sys.stdout.write(rendered.decode("utf-8"))
        else:
            print(f"Wrote {args.output}")


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
