"""Common utilities and types for network lifecycle commands."""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Message used when a failure carries no usable description
GENERIC_ERROR = 'An unknown error occurred'


class CommandError(Exception):
    """A lifecycle command failed.

    Raised for every execution failure regardless of whether the docker
    engine or compose reported it.
    """


@dataclass
class CommandResult:
    """Result returned by a compose invocation."""
    exit_code: int = 0
    out: str = ''
    err: str = ''


def run_command(
    cmd: list[str],
    cwd: Optional[Path] = None,
    timeout: int = 600,
    capture: bool = True,
    env: Optional[dict] = None
) -> tuple[int, str, str]:
    """Run a command and return (returncode, stdout, stderr)."""
    logger.debug(f"Running: {' '.join(cmd)}")
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=capture,
            text=True,
            timeout=timeout,
            env=env,
            check=False  # We handle return codes explicitly
        )
        return result.returncode, result.stdout, result.stderr
    except subprocess.TimeoutExpired:
        return -1, '', f'Command timed out after {timeout}s'
    except Exception as e:
        return -1, '', str(e)


def _field(error: BaseException, name: str):
    """Look up a message field on an exception or on a dict passed as its first arg."""
    value = getattr(error, name, None)
    if value is None and error.args and isinstance(error.args[0], dict):
        value = error.args[0].get(name)
    return value


def error_message(error: BaseException) -> str:
    """Extract a human readable message from a heterogeneous failure.

    Precedence:
    1. err - stderr text attached by the compose runner
    2. errno - message/code attached by lower level failures
    3. message or str(error)
    4. GENERIC_ERROR
    """
    err = _field(error, 'err')
    if err:
        return str(err).strip()

    errno = _field(error, 'errno')
    if errno is not None and errno != '':
        # OSError exposes a numeric errno; its strerror is the useful part
        if isinstance(errno, int) and getattr(error, 'strerror', None):
            return str(error.strerror)
        return str(errno)

    message = _field(error, 'message')
    if message:
        return str(message)
    if error.args and isinstance(error.args[0], dict):
        return GENERIC_ERROR

    return str(error) or GENERIC_ERROR
