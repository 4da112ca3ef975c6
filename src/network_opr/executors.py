"""Executors for the docker engine and the compose CLI.

DockerEngine talks to the daemon through the docker SDK. ComposeRunner
shells out to the configured compose command; a non-zero exit raises
ComposeError carrying stderr as `err`.
"""

import logging
from pathlib import Path
from typing import Optional

import docker
import requests
from docker.errors import DockerException

from common import CommandResult, run_command

logger = logging.getLogger(__name__)


class ComposeError(Exception):
    """A compose command exited non-zero.

    Attributes:
        err: Captured stderr
        out: Captured stdout
        exit_code: Process exit code (-1 on timeout/launch failure)
    """

    def __init__(self, err: str, out: str = '', exit_code: int = 1):
        super().__init__(err)
        self.err = err
        self.out = out
        self.exit_code = exit_code


class DockerEngine:
    """Docker daemon queries.

    The client is created lazily so constructing the engine never touches
    the daemon.
    """

    def __init__(self, client: Optional[docker.DockerClient] = None):
        self._client = client

    @property
    def client(self) -> docker.DockerClient:
        if self._client is None:
            self._client = docker.from_env()
        return self._client

    def version(self) -> dict:
        """Daemon version info; the version string is under 'Version'."""
        try:
            info: dict = self.client.version()
        except requests.exceptions.ConnectionError as e:
            raise DockerException(f"Cannot connect to the docker daemon: {e}") from e
        return info

    def list_images(self) -> list[dict]:
        """Low level image list; each entry has 'RepoTags' (may be None)."""
        try:
            images: list[dict] = self.client.api.images()
        except requests.exceptions.ConnectionError as e:
            raise DockerException(f"Cannot connect to the docker daemon: {e}") from e
        return images


class ComposeRunner:
    """Runs compose verbs for a project directory.

    Attributes:
        command: Base command, e.g. ['docker', 'compose'] or ['docker-compose']
        timeout: Seconds before a command is abandoned
    """

    def __init__(self, command: Optional[list[str]] = None, timeout: int = 600):
        self.command = list(command or ['docker', 'compose'])
        self.timeout = timeout

    def _run(self, args: list[str], cwd: Optional[Path] = None,
             env: Optional[dict] = None) -> CommandResult:
        cmd = self.command + args
        rc, out, err = run_command(cmd, cwd=cwd, timeout=self.timeout, env=env)
        if rc != 0:
            logger.debug(f"{' '.join(cmd)} failed (rc={rc}): {err.strip()}")
            raise ComposeError(err=err.strip() or out.strip(), out=out, exit_code=rc)
        return CommandResult(exit_code=rc, out=out, err=err)

    def version(self, cwd: Optional[Path] = None, env: Optional[dict] = None) -> CommandResult:
        return self._run(['version', '--short'], cwd=cwd, env=env)

    def up_all(self, cwd: Path, env: Optional[dict] = None) -> CommandResult:
        return self._run(['up', '--detach', '--remove-orphans'], cwd=cwd, env=env)

    def down(self, cwd: Path, env: Optional[dict] = None) -> CommandResult:
        return self._run(['down', '--remove-orphans'], cwd=cwd, env=env)

    def up_one(self, service: str, cwd: Path, env: Optional[dict] = None) -> CommandResult:
        return self._run(['up', '--detach', service], cwd=cwd, env=env)

    def stop_one(self, service: str, cwd: Path, env: Optional[dict] = None) -> CommandResult:
        return self._run(['stop', service], cwd=cwd, env=env)

    def rm(self, cwd: Path, env: Optional[dict] = None, services: tuple[str, ...] = ()) -> CommandResult:
        """Remove stopped service containers."""
        return self._run(['rm', '--force', *services], cwd=cwd, env=env)
