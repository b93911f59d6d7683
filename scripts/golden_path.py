#!/usr/bin/env python3
"""Golden path demo for WakeGate (in-process, no server)."""

from __future__ import annotations

import asyncio
import os
import sys
from datetime import timedelta
from typing import Any

os.environ.setdefault("WAKEGATE_ALLOW_INSECURE_DEV", "true")
os.environ.setdefault("WAKEGATE_RESCHEDULE_ON_STARTUP", "false")

from wakegate import Destination, IntervalAlarmPolicy, WakeGate  # noqa: E402
from wakegate.db.base import close_db, init_db  # noqa: E402


async def run() -> int:
    gate = WakeGate()
    seen: list[dict[str, Any]] = []

    @gate.handler("demo.sync", actions=["sync"], categories=["demo"])
    async def sync(payload: dict[str, Any]) -> None:
        if not gate.hold.is_held():
            raise RuntimeError("Work ran without the hold asserted")
        seen.append(payload)

    await init_db()
    await gate.start()
    try:
        print("Submitting explicit work...")
        gate.submit("demo.sync", {"step": "explicit"})

        print("Submitting symbolic work...")
        gate.submit(Destination(action="sync", categories=["demo"]), {"step": "symbolic"})

        await gate.queue.join(timeout=10)
        if [p["step"] for p in seen] != ["explicit", "symbolic"]:
            raise RuntimeError(f"Unexpected deliveries: {seen}")
        if gate.hold.is_held():
            raise RuntimeError("Hold still asserted after all work completed")

        print("Scheduling alarm...")
        policy = IntervalAlarmPolicy(
            "demo-alarm",
            interval=timedelta(milliseconds=200),
            destination="demo.sync",
            payload={"step": "alarm"},
            first_delay=timedelta(milliseconds=50),
        )
        gate.add_alarm(policy)
        await gate.alarms.schedule_alarms(policy)

        await asyncio.sleep(0.5)
        await gate.queue.join(timeout=10)
        if not any(p["step"] == "alarm" for p in seen):
            raise RuntimeError("Alarm never delivered work")

        last = await gate.alarms.last_alarm_at("demo-alarm")
        print(f"Alarm last fired at {last}")

        if await gate.alarms.schedule_alarms(policy, force=False):
            raise RuntimeError("Fresh alarm was re-armed without force")

        await gate.alarms.cancel_alarms("demo-alarm")
    finally:
        await gate.stop()
        await close_db()

    print("Golden path complete: work delivered under the hold, alarm fired and gated.")
    return 0


def main() -> int:
    return asyncio.run(run())


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except Exception as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        raise
