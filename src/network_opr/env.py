"""Environment passed to every compose command.

On Linux, containers run their processes as the host user so files written
to volumes/ stay owned by that user. The compose templates read USERID and
GROUPID for this; other platforms rely on the image defaults.
"""

import logging
import os
import platform
from collections.abc import Mapping
from typing import Callable, Optional

logger = logging.getLogger(__name__)

IdentityProvider = Callable[[], Optional[tuple[int, int]]]


def host_user_ids() -> Optional[tuple[int, int]]:
    """Numeric (uid, gid) of the current user, None when unavailable."""
    getuid = getattr(os, 'getuid', None)
    getgid = getattr(os, 'getgid', None)
    if getuid is None or getgid is None:
        return None
    try:
        return getuid(), getgid()
    except OSError as e:
        logger.debug(f"Could not determine user ids: {e}")
        return None


def get_compose_env(
    environ: Optional[Mapping[str, str]] = None,
    identity: Optional[IdentityProvider] = host_user_ids,
) -> dict[str, str]:
    """Build the environment for compose commands.

    Args:
        environ: Ambient environment (default: os.environ)
        identity: Returns (uid, gid) or None; None disables the lookup.
            A provider that raises is treated as returning None

    Returns:
        Copy of environ, plus USERID/GROUPID on Linux when known
    """
    env = dict(os.environ if environ is None else environ)

    if platform.system().lower() != 'linux' or identity is None:
        return env

    try:
        ids = identity()
    except Exception as e:
        logger.debug(f"Identity lookup failed, omitting USERID/GROUPID: {e}")
        ids = None
    if ids is not None:
        uid, gid = ids
        env['USERID'] = str(uid)
        env['GROUPID'] = str(gid)
    return env
