#!/usr/bin/env python3
"""Dump the reconciled inventory snapshot.

Fetches the feed once, runs it through the reconciliation service and
prints equipment, active sessions, overdue loans and history so you can
check how the sheet is being interpreted.

Usage
-----
Set environment variables and run::

    export EQUIP_SCRIPT_URL="https://script.google.com/macros/s/.../exec"
    export EQUIP_API_KEY="shared-key"
    python scripts/dump_snapshot.py

Options::

    --json               Output as machine-readable JSON
    --output FILE        Write output to FILE instead of stdout
    --history N          Number of history entries to print (default 10)
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyequip import EquipConfig, InventoryClient  # noqa: E402
from pyequip.state.queries import overdue_sessions, split_by_role  # noqa: E402

# ── helpers ──────────────────────────────────────────────────


def _section(title: str) -> str:
    line = "=" * 60
    return f"\n{line}\n  {title}\n{line}"


def _session_line(session: Any) -> str:
    items = ", ".join(session.items) or "-"
    return f"  {session.id:<38} {session.project_name[:24]:<24} {session.user_id:<10} {session.end_date or '-':<12} [{items}]"


async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Dump the reconciled inventory snapshot for debugging.",
    )
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--output", "-o", help="Write output to FILE instead of stdout")
    parser.add_argument("--history", type=int, default=10, help="History entries to print")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    config = EquipConfig.from_env()
    async with InventoryClient(config) as client:
        report = await client.sync()
    snapshot = client.snapshot
    now = datetime.now(UTC)

    if not report.ok:
        print(report.message, file=sys.stderr)
        sys.exit(1)

    if args.json_mode or args.output:
        payload = json.dumps(
            {"timestamp": now.isoformat(), "report": report.model_dump(), "snapshot": snapshot.model_dump(mode="json")},
            indent=2,
            ensure_ascii=False,
        )
        if args.output:
            Path(args.output).write_text(payload, encoding="utf-8")
            print(f"JSON written to {args.output}", file=sys.stderr)
        else:
            print(payload)
        return

    out: list[str] = [_section("pyequip dump_snapshot"), f"  time      : {now.isoformat()}", f"  result    : {report.message}"]

    out.append(_section(f"EQUIPMENT ({len(snapshot.equipment)})"))
    for item in snapshot.equipment:
        out.append(f"  {item.id:<28} {item.name[:30]:<30} {item.status.value:<18} {item.condition[:40]}")

    internal, external = split_by_role(snapshot)
    out.append(_section(f"ACTIVE SESSIONS ({len(external)} external, {len(internal)} internal)"))
    for session in (*external, *internal):
        out.append(_session_line(session))

    overdue = overdue_sessions(snapshot, now)
    out.append(_section(f"OVERDUE ({len(overdue)})"))
    for session in overdue:
        out.append(_session_line(session))

    out.append(_section(f"HISTORY (latest {args.history} of {len(snapshot.history)})"))
    for session in snapshot.history[: args.history]:
        out.append(_session_line(session))

    print("\n".join(out))


if __name__ == "__main__":
    asyncio.run(main())
