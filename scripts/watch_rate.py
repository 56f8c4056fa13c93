#!/usr/bin/env python3
"""
Console watcher for the rate backend.

Runs a RateViewController in the chosen mode and prints its statistics.

Requires the project to be installed (pip install -e .).

Usage examples:
  python scripts/watch_rate.py
  python scripts/watch_rate.py --mode live --duration 120 --interval 15
  python scripts/watch_rate.py --api-base http://127.0.0.1:8080 --max-points 12
"""

import asyncio
import argparse
import sys
from typing import Optional

from core.config import settings
from core.schemas import ViewMode
from feeds.history_client import HistoryClient
from feeds.sse_client import SSEClient
from services.view_controller import RateViewController


def print_snapshot(controller: RateViewController) -> None:
    snap = controller.snapshot()
    if snap.error:
        print(f"[{snap.mode.value}] ⚠ {snap.error}")
    elif snap.loading:
        print(f"[{snap.mode.value}] loading...")
    else:
        s = snap.stats
        print(
            f"[{snap.mode.value}] latest={s.latest} min={s.min} max={s.max} "
            f"supply={s.total_supply} samples={snap.sample_count}"
        )


def print_chart(controller: RateViewController) -> None:
    chart = controller.chart()
    low, high = chart.axis_bounds()
    print(f"  axis: {low:.6f} .. {high:.6f}")
    for label, value in zip(chart.labels, chart.values):
        print(f"  {label}  {value:.6f}")


async def watch(api_base: str, mode: ViewMode, max_points: int, interval: int, duration: Optional[int]) -> None:
    controller = RateViewController(
        history_client_factory=lambda: HistoryClient(base_url=api_base),
        stream_client_factory=lambda: SSEClient(url=f"{api_base.rstrip('/')}/sse/rate"),
        max_points=max_points,
        tz=settings.display_tz,
    )

    async with controller:
        await controller.wait_for_history()
        if mode is ViewMode.HISTORY:
            print_snapshot(controller)
            print_chart(controller)
            return

        await controller.set_mode(ViewMode.LIVE)
        loop = asyncio.get_running_loop()
        end_time = loop.time() + duration if duration else None
        while end_time is None or loop.time() < end_time:
            await asyncio.sleep(interval)
            print_snapshot(controller)
            if controller.error is not None:
                return


async def main() -> None:
    parser = argparse.ArgumentParser(description="Watch the conversion rate (history or live)")
    parser.add_argument("--api-base", default=settings.api_base, help=f"Rate backend (default: {settings.api_base})")
    parser.add_argument("--mode", choices=[m.value for m in ViewMode], default="history", help="Data source")
    parser.add_argument("--max-points", type=int, default=settings.chart_max_points, help="Maximum chart points")
    parser.add_argument("--interval", type=int, default=15, help="Seconds between live stat prints")
    parser.add_argument("--duration", type=int, default=0, help="Seconds to watch live (0 = until the stream ends)")
    args = parser.parse_args()

    duration = args.duration if args.duration and args.duration > 0 else None
    await watch(args.api_base, ViewMode(args.mode), args.max_points, args.interval, duration)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\n[Info] Interrupted. Bye.")
        sys.exit(0)
