"""docsfront CLI entrypoint.

Usage:
    python -m docsfront                          # Start the fixture server
    python -m docsfront --resolve /ja/rest       # Show locale/version negotiation
    python -m docsfront --suggest rest           # Show overlay suggestions for a query
    python -m docsfront --visit /get-started     # Load a page and summarize its widgets
    python -m docsfront --self-check             # First-run diagnostics
    python -m docsfront --version                # Print version
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

from docsfront.catalog import PageCatalog
from docsfront.client import DocsApiClient
from docsfront.logging import configure_logging
from docsfront.negotiation import LocaleVersionNegotiator
from docsfront.search import build_suggestion_list
from docsfront.settings import get_api_url, get_fixtures_path, get_log_level
from docsfront.store import MemoryPreferenceStore


def _parse_cookies(values: list[str]) -> dict[str, str]:
    cookies: dict[str, str] = {}
    for value in values:
        name, sep, cookie = value.partition("=")
        if not sep or not name:
            raise ValueError(f"cookie must look like name=value, got {value!r}")
        cookies[name.strip()] = cookie.strip()
    return cookies


def run_resolve(url: str, cookies: dict[str, str]) -> int:
    """Print how ``url`` is negotiated for a browser holding ``cookies``."""
    store = MemoryPreferenceStore(cookies)
    navigation = LocaleVersionNegotiator(store).resolve(url)
    payload = navigation.model_dump()
    payload["cookies"] = store.snapshot()
    print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 0


async def run_suggest(base_url: str, query: str) -> int:
    """Print the suggestion and general result lists the overlay would show."""
    async with DocsApiClient(base_url) as client:
        hits = await client.suggestions(query)
        general = await client.search(query) if query.strip() else []
    suggestions = build_suggestion_list(query.strip(), hits)
    print(
        json.dumps(
            {
                "general_results": [hit.model_dump(exclude_none=True) for hit in general],
                "suggestions": [hit.text for hit in suggestions],
            },
            indent=2,
        )
    )
    return 0


async def run_visit(base_url: str, url: str, width: int) -> int:
    """Load ``url`` in a fresh session and print what its widgets show."""
    from docsfront.session import BrowsingSession, PageNotFound

    catalog = PageCatalog.load(get_fixtures_path())
    async with BrowsingSession(
        catalog, client=DocsApiClient(base_url), viewport_width=width
    ) as session:
        try:
            page = await session.navigate(url)
        except PageNotFound as exc:
            print(f"not found: {exc.path}", file=sys.stderr)
            return 1
        summary: dict[str, Any] = {
            "url": page.url,
            "redirects": session.redirects,
            "title": page.title,
            "locale": page.locale,
            "version": page.version,
            "pickers": {s.kind: s.value for s in page.pickers.selections},
            "sections": [section.heading for section in page.visible_sections],
            "minitoc": [entry.title for entry in page.visible_minitoc],
            "breadcrumbs": [title for title, _ in page.breadcrumbs],
            "layout": page.layout.breakpoint,
            "code_samples": page.code_samples,
        }
    print(json.dumps(summary, indent=2, ensure_ascii=False))
    return 0


def run_self_check(base_url: str, output_json: bool = False) -> int:
    """Run first-run diagnostics and print actionable guidance."""
    import httpx

    checks: dict[str, dict[str, Any]] = {}

    python_ok = sys.version_info >= (3, 11)
    checks["python_version"] = {
        "required": True,
        "status": "pass" if python_ok else "fail",
        "detail": f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
        "hint": "Install Python 3.11+." if not python_ok else "Detected supported Python version.",
    }

    fixtures_path = get_fixtures_path()
    fixtures_ok = (fixtures_path / "pages.json").exists()
    checks["fixtures"] = {
        "required": True,
        "status": "pass" if fixtures_ok else "fail",
        "detail": str(fixtures_path),
        "hint": (
            "Point DOCSFRONT_FIXTURES_PATH at a directory containing pages.json."
            if not fixtures_ok
            else "Fixture data found."
        ),
    }

    server_ok = False
    server_detail = f"Could not reach {base_url}/health"
    try:
        with httpx.Client(timeout=2.0) as client:
            response = client.get(f"{base_url}/health")
            if response.status_code == 200:
                payload = response.json()
                server_ok = True
                server_detail = (
                    f"status={payload.get('status')}, pages={payload.get('pages')}"
                )
            else:
                server_detail = f"HTTP {response.status_code}"
    except httpx.HTTPError as exc:
        server_detail = str(exc)

    checks["server_health"] = {
        "required": False,
        "status": "pass" if server_ok else "warn",
        "detail": server_detail,
        "hint": "Start the fixture server with `python -m docsfront` and re-run self-check."
        if not server_ok
        else "Server health endpoint reachable.",
    }

    required_failed = [
        name
        for name, check in checks.items()
        if check["required"] and check["status"] != "pass"
    ]
    warnings = [name for name, check in checks.items() if check["status"] == "warn"]
    status = "pass" if not required_failed else "fail"

    if output_json:
        print(
            json.dumps(
                {
                    "status": status,
                    "required_failed": required_failed,
                    "warnings": warnings,
                    "checks": checks,
                },
                indent=2,
            )
        )
    else:
        print("docsfront self-check")
        print("")
        for name, check in checks.items():
            print(f"{name}: {check['status']} | {check['detail']}")
            print(f"  hint: {check['hint']}")
        print("")
        print(f"overall: {status}")
        if required_failed:
            print(f"required failures: {', '.join(required_failed)}")
        if warnings:
            print(f"warnings: {', '.join(warnings)}")

    return 0 if status == "pass" else 1


def main() -> None:
    """CLI entrypoint."""
    from docsfront import __version__

    parser = argparse.ArgumentParser(
        prog="docsfront",
        description="docsfront: interactive widgets of a documentation site",
    )
    parser.add_argument(
        "--version", "-v", action="version", version=f"docsfront {__version__}"
    )
    mode_group = parser.add_mutually_exclusive_group()
    mode_group.add_argument(
        "--resolve", metavar="URL", help="Show locale/version negotiation for a URL"
    )
    mode_group.add_argument(
        "--suggest", metavar="QUERY", help="Show search overlay suggestions for a query"
    )
    mode_group.add_argument(
        "--visit", metavar="URL", help="Load a page and summarize its widgets"
    )
    mode_group.add_argument(
        "--self-check",
        action="store_true",
        help="Run first-run diagnostics and setup guidance",
    )
    parser.add_argument(
        "--cookie",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Preference cookie for --resolve (repeatable)",
    )
    parser.add_argument(
        "--width",
        type=int,
        default=1280,
        help="Viewport width for --visit (default: 1280)",
    )
    parser.add_argument(
        "--base-url",
        default=get_api_url(),
        help="Base URL of the docs API (default: DOCSFRONT_API_URL or http://localhost:4000)",
    )
    parser.add_argument(
        "--self-check-json",
        action="store_true",
        help="Emit JSON output for --self-check mode",
    )
    parser.add_argument(
        "--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)"
    )
    parser.add_argument(
        "--port", type=int, default=4000, help="Port to bind to (default: 4000)"
    )

    args = parser.parse_args()
    configure_logging(get_log_level())

    if args.self_check_json and not args.self_check:
        parser.error("--self-check-json requires --self-check")
    if args.cookie and args.resolve is None:
        parser.error("--cookie requires --resolve")

    if args.resolve is not None:
        try:
            cookies = _parse_cookies(args.cookie)
        except ValueError as exc:
            parser.error(str(exc))
        sys.exit(run_resolve(args.resolve, cookies))
    elif args.suggest is not None:
        sys.exit(asyncio.run(run_suggest(args.base_url, args.suggest)))
    elif args.visit is not None:
        sys.exit(asyncio.run(run_visit(args.base_url, args.visit, args.width)))
    elif args.self_check:
        sys.exit(run_self_check(args.base_url, output_json=args.self_check_json))
    else:
        import uvicorn

        uvicorn.run(
            "docsfront.main:create_app",
            factory=True,
            host=args.host,
            port=args.port,
            reload=False,
        )


if __name__ == "__main__":
    main()
