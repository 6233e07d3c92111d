import asyncio
import threading

from bwmeter.asyncio_thread import AsyncioEventLoopThread


async def current_thread_name():
    await asyncio.sleep(0)
    return threading.current_thread().name


def test_submit_runs_on_loop_thread(async_thread_runner):
    future = async_thread_runner.submit(current_thread_name())
    assert future.result(timeout=5) == async_thread_runner.thread.name


def test_shutdown_stops_thread_and_closes_loop():
    runner = AsyncioEventLoopThread(name="shutdown-loop")
    assert runner.submit(current_thread_name()).result(timeout=5) == "shutdown-loop"

    runner.shutdown()

    assert not runner.thread.is_alive()
    assert runner.loop.is_closed()
