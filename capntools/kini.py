"""Environment setup so that docker and kind commands reach this program."""

from __future__ import annotations

import logging
import os
import shutil
import sys
import tempfile
from typing import Callable

log = logging.getLogger(__name__)


def setup_environment(docker: bool, kind: bool) -> tuple[str, Callable[[], None]]:
    """Link "docker" and/or "kind" to this program in a new directory on PATH.

    Returns the directory and a function that removes it.
    """
    directory = tempfile.mkdtemp()
    log.debug("Setting up (dir=%s, docker=%s, kind=%s)", directory, docker, kind)

    def cleanup() -> None:
        log.debug("Cleaning up (dir=%s)", directory)
        try:
            shutil.rmtree(directory)
        except OSError as exc:
            raise OSError(f"failed to clean up temporary directory: {exc}") from exc

    def abort(message: str, exc: BaseException) -> OSError:
        try:
            cleanup()
        except OSError:
            pass
        error = OSError(f"{message}: {exc}")
        error.__cause__ = exc
        return error

    program = sys.argv[0] if sys.argv else ""
    try:
        self_path = os.path.abspath(program)
    except (OSError, ValueError) as exc:
        raise abort(f'failed to identity absolute path to "{program}"', exc)

    for enabled, name in ((docker, "docker"), (kind, "kind")):
        if not enabled:
            continue
        try:
            os.symlink(self_path, os.path.join(directory, name))
        except OSError as exc:
            raise abort(f"failed to create symlink as {name} for self", exc)

    current = os.environ.get("PATH", "")
    os.environ["PATH"] = f"{directory}:{current}"
    return directory, cleanup