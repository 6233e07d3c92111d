import asyncio
import re
import time

from typing import List, Tuple

DEFAULT_TIMEOUT = 5

TICK_PATTERN = re.compile(r"current: (\d+) (\w+)/s\taverage: (\d+\.\d{4}) (\w+)/s")
SUMMARY_PATTERN = re.compile(r"total bytes read in (\d+\.\d{2}) seconds: (\d+) (\w+)")


async def wait_for_condition(predicate, timeout_sec=DEFAULT_TIMEOUT):
    start = time.monotonic()
    while time.monotonic() - start < timeout_sec:
        if predicate():
            return
        await asyncio.sleep(0.01)
    raise AssertionError(f"Timed out after {timeout_sec}s waiting for condition.")


def wait_for_condition_sync(predicate, timeout_sec=DEFAULT_TIMEOUT):
    start = time.monotonic()
    while time.monotonic() - start < timeout_sec:
        if predicate():
            return
        time.sleep(0.01)
    raise AssertionError(f"Timed out after {timeout_sec}s waiting for condition.")


def parse_report(text: str) -> Tuple[List[tuple], List[tuple]]:
    """
    Split aggregator output into tick lines and summary lines.

    Returns:
        (ticks, summaries): ticks as (current, current_unit, average, average_unit),
        summaries as (seconds, total, unit).
    """
    ticks = [m.groups() for m in TICK_PATTERN.finditer(text)]
    summaries = [m.groups() for m in SUMMARY_PATTERN.finditer(text)]
    return ticks, summaries
