"""Device-bridge (adb) command execution.

All one-shot adb invocations go through :func:`run_adb`, which delegates to a
module-level runner. Tests swap the runner with :func:`set_runner` instead of
patching ``subprocess`` in every caller.
"""

from __future__ import annotations

import subprocess
import threading
from collections.abc import Callable, Sequence

from gadget.config import GadgetConfig
from gadget.exceptions import BridgeError, BridgeTimeoutError
from gadget.utils.logging import get_logger

logger = get_logger(__name__)

Runner = Callable[[Sequence[str], float], subprocess.CompletedProcess]


def _subprocess_runner(args: Sequence[str], timeout: float) -> subprocess.CompletedProcess:
    return subprocess.run(
        list(args),
        capture_output=True,
        text=True,
        timeout=timeout,
        stdin=subprocess.DEVNULL,
    )


_lock = threading.Lock()
_runner: Runner = _subprocess_runner


def set_runner(runner: Runner) -> None:
    """Replace the process runner (used by tests to fake adb)."""
    global _runner
    with _lock:
        _runner = runner


def reset_runner() -> None:
    global _runner
    with _lock:
        _runner = _subprocess_runner


def build_command(config: GadgetConfig, args: Sequence[str], serial: str | None = None) -> list[str]:
    cmd = [str(config.adb_path)]
    if serial:
        cmd.extend(["-s", serial])
    cmd.extend(args)
    return cmd


def run_adb(
    config: GadgetConfig,
    *args: str,
    serial: str | None = None,
    timeout: float | None = None,
    check: bool = True,
) -> str:
    """Run an adb command and return its stdout.

    Args:
        config: Resolved configuration (supplies the adb path).
        *args: adb arguments, e.g. ``"shell", "wm", "density"``.
        serial: Target device; omitted for global commands like ``connect``.
        timeout: Seconds before the process is killed. Defaults to
            ``config.command_timeout_s``.
        check: Raise on a non-zero exit status.

    Returns:
        Captured stdout text.

    Raises:
        BridgeTimeoutError: The command did not finish in time.
        BridgeError: adb is missing or exited non-zero (when *check*).
    """
    cmd = build_command(config, args, serial)
    limit = timeout if timeout is not None else config.command_timeout_s
    with _lock:
        runner = _runner

    logger.debug("adb_exec", cmd=" ".join(cmd))
    try:
        result = runner(cmd, limit)
    except subprocess.TimeoutExpired as exc:
        raise BridgeTimeoutError(
            f"adb {' '.join(args)} timed out after {limit:g}s", command=cmd
        ) from exc
    except FileNotFoundError as exc:
        raise BridgeError(f"adb not found: {exc}", command=cmd) from exc
    except OSError as exc:
        raise BridgeError(f"Failed to launch adb: {exc}", command=cmd) from exc

    if check and result.returncode != 0:
        stderr = (result.stderr or "").strip()
        stdout = (result.stdout or "").strip()
        message = f"adb {' '.join(args)} exited with code {result.returncode}"
        if stderr or stdout:
            message += f": {(stderr or stdout)[:500]}"
        raise BridgeError(message, command=cmd, returncode=result.returncode, detail=stdout)

    return result.stdout or ""
