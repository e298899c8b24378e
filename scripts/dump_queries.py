#!/usr/bin/env python3
"""Dump the session and every query pyartchain can run.

This script restores (or creates) a session, optionally logs in, and
runs the current-user, achievement and contest queries, printing each
cache snapshot together with the raw API JSON.

Usage
-----
Set environment variables and run::

    export ARTCHAIN_API_URL="http://localhost:3000/api"
    export ARTCHAIN_USERNAME="mai"
    export ARTCHAIN_PASSWORD="your-password"
    python scripts/dump_queries.py

Options::

    --status ACTIVE      Contest status filter (default: all)
    --contest ID         Also load a single contest
    --logout             Sign out at the end
    --json               Output as machine-readable JSON
    --output FILE        Write JSON output to FILE instead of stdout
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pydantic import BaseModel  # noqa: E402

from pyartchain import ArtchainClient, ArtchainConfig, ArtchainError, ContestStatus, EntrySnapshot  # noqa: E402

# ── helpers ──────────────────────────────────────────────────


def _section(title: str) -> str:
    line = "=" * 60
    return f"\n{line}\n  {title}\n{line}"


def _plain(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return {"parsed": value.model_dump(mode="json"), "raw": getattr(value, "raw", {})}
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value


def _snapshot_dict(snapshot: EntrySnapshot[Any]) -> dict[str, Any]:
    return {
        "key": snapshot.key.canonical if snapshot.key is not None else None,
        "status": snapshot.status.value,
        "fetched_at": snapshot.fetched_at,
        "failure_count": snapshot.failure_count,
        "error": snapshot.error.model_dump() if snapshot.error is not None else None,
        "value": _plain(snapshot.value),
    }


def _print_snapshot(name: str, snapshot: EntrySnapshot[Any], out: list[str]) -> dict[str, Any]:
    d = _snapshot_dict(snapshot)
    out.append(_section(name))
    for key in ("key", "status", "fetched_at", "failure_count"):
        out.append(f"  {key}: {d[key]}")
    if d["error"]:
        out.append(f"  !! {d['error']['type']}: {d['error']['message']}")
    if d["value"] is not None:
        out.append(json.dumps(d["value"], indent=2, default=str, ensure_ascii=False))
    return d


# ── main ─────────────────────────────────────────────────────


async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Dump the pyartchain session and query snapshots for debugging / development.",
    )
    parser.add_argument("--status", choices=[status.value for status in ContestStatus], help="Contest status filter")
    parser.add_argument("--contest", type=int, help="Also load this contest id")
    parser.add_argument("--logout", action="store_true", help="Sign out at the end")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--output", "-o", help="Write JSON output to FILE instead of stdout")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    config = ArtchainConfig.from_env()
    result: dict[str, Any] = {
        "timestamp": datetime.now(UTC).isoformat(),
        "base_url": config.base_url,
        "queries": {},
    }
    out: list[str] = [
        _section("pyartchain dump_queries"),
        f"  time      : {result['timestamp']}",
        f"  base_url  : {config.base_url}",
        f"  storage   : {config.storage_path or '<memory>'}",
    ]

    async with ArtchainClient(config) as client:
        hydrated = await client.wait_hydrated(timeout=config.hydration_timeout or None)
        out.append(f"  hydrated  : {hydrated}")

        username = os.environ.get("ARTCHAIN_USERNAME")
        password = os.environ.get("ARTCHAIN_PASSWORD")
        if username and password and not client.session.is_authenticated:
            try:
                await client.login(username, password)
                out.append(f"  login     : ok ({username})")
            except ArtchainError as exc:
                out.append(f"  login     : failed ({exc})")
                result["login_error"] = str(exc)

        session = client.session
        user = session.user
        result["session"] = {
            "authenticated": session.is_authenticated,
            "user": _plain(user) if user is not None else None,
        }
        out.append(f"  signed in : {session.is_authenticated}")

        queries: dict[str, Any] = {
            "me": client.me_query(),
            "achievements": client.achievements_query(user.user_id if user is not None else None),
            "contests": client.contests_query(ContestStatus(args.status) if args.status else None),
        }
        if args.contest is not None:
            queries["contest"] = client.contest_query(args.contest)

        for name, query in queries.items():
            snapshot = await query.wait()
            result["queries"][name] = _print_snapshot(f"{name.upper()}  enabled={query.enabled}", snapshot, out)
            query.close()

        if args.logout:
            await client.logout()
            out.append(_section("LOGOUT"))
            out.append(f"  cache keys left: {len(client.cache.keys())}")

    # ── Output ──
    payload = json.dumps(result, indent=2, default=str, ensure_ascii=False)
    if args.output:
        Path(args.output).write_text(payload, encoding="utf-8")
        print(f"JSON written to {args.output}", file=sys.stderr)
    elif args.json_mode:
        print(payload)
    else:
        print("\n".join(out))


if __name__ == "__main__":
    asyncio.run(main())
