import os
import signal
import subprocess
import sys

from bwmeter.cli import install_signal_handlers, main, restore_signal_handlers
from bwmeter.core import BandwidthMeter
from tests.helpers import parse_report, wait_for_condition_sync


def test_file_source_end_to_end(tmp_path, capsys):
    path = tmp_path / "data.bin"
    path.write_bytes(b"x" * 3500)
    previous_handler = signal.getsignal(signal.SIGINT)

    assert main(["--file", str(path), "--mb", "1"]) == 0

    _, summaries = parse_report(capsys.readouterr().out)
    assert [s[1:] for s in summaries] == [("3", "KB")]
    assert signal.getsignal(signal.SIGINT) == previous_handler


def test_missing_source_exits_non_zero(capsys):
    # pytest replaces stdin, so nothing counts as piped in
    assert main([]) == 1
    assert "must provide" in capsys.readouterr().out


def test_conflicting_sources_exit_non_zero(capsys):
    assert main(["--file", "data.bin", "--port", "9000"]) == 1
    assert "only specify one" in capsys.readouterr().out


def test_unopenable_source_exits_non_zero(tmp_path, capsys):
    assert main(["--file", str(tmp_path / "missing.bin")]) == 1

    out = capsys.readouterr().out
    assert "--file: Unable to open file" in out
    assert "total bytes read" not in out


def test_signal_handler_triggers_cancellation(async_thread_runner):
    meter = BandwidthMeter(chunk_size=1024)
    previous = install_signal_handlers(async_thread_runner, meter)
    try:
        handler = signal.getsignal(signal.SIGTERM)
        handler(signal.SIGTERM, None)
        wait_for_condition_sync(meter.cancellation.is_set)
    finally:
        restore_signal_handlers(previous)

    assert meter.cancellation.reason == "received SIGTERM"
    assert signal.getsignal(signal.SIGTERM) == previous[signal.SIGTERM]


def test_main_script_runs_from_checkout(tmp_path):
    root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    path = tmp_path / "data.bin"
    path.write_bytes(b"x" * 2048)
    env = {k: v for k, v in os.environ.items() if k != "PYTHONPATH"}

    result = subprocess.run(
        [sys.executable, os.path.join(root, "main.py"), "--file", str(path)],
        cwd=str(tmp_path),
        env=env,
        stdin=subprocess.DEVNULL,
        capture_output=True,
        text=True,
        timeout=30
    )

    assert result.returncode == 0, result.stderr
    _, summaries = parse_report(result.stdout)
    assert [s[1:] for s in summaries] == [("2", "KB")]
