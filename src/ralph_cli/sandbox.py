"""Detection of container/sandbox environments.

Inside a container the assistant is allowed to run without permission
prompts (``--dangerously-skip-permissions``).
"""

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

SANDBOX_ENV_VAR = "IS_SANDBOX"
SANDBOX_ENV_VALUE = "1"
CONTAINER_ENV_VAR = "container"
CONTAINER_RUNTIMES = ("docker", "podman")

DOCKERENV_PATH = Path("/.dockerenv")
CGROUP_PATH = Path("/proc/1/cgroup")
CGROUP_MARKERS = ("docker", "kubepods", "containerd", "lxc")


def _cgroup_mentions_container(cgroup_path: Path) -> bool:
    try:
        content = cgroup_path.read_text()
    except OSError:
        return False
    return any(marker in content for marker in CGROUP_MARKERS)


def is_sandboxed(
    environ: Optional[Mapping[str, str]] = None,
    dockerenv_path: Path = DOCKERENV_PATH,
    cgroup_path: Path = CGROUP_PATH,
) -> bool:
    """Return True if we appear to be running inside a container.

    Checks, in order:
    - ``IS_SANDBOX=1``
    - the ``/.dockerenv`` marker file
    - container runtime names in ``/proc/1/cgroup``
    - ``container=docker`` or ``container=podman``

    Unreadable files count as no evidence.
    """
    env = os.environ if environ is None else environ

    if env.get(SANDBOX_ENV_VAR) == SANDBOX_ENV_VALUE:
        logger.debug("Sandbox detected via %s", SANDBOX_ENV_VAR)
        return True

    if dockerenv_path.exists():
        logger.debug("Sandbox detected via %s", dockerenv_path)
        return True

    if _cgroup_mentions_container(cgroup_path):
        logger.debug("Sandbox detected via %s", cgroup_path)
        return True

    if env.get(CONTAINER_ENV_VAR) in CONTAINER_RUNTIMES:
        logger.debug("Sandbox detected via %s=%s", CONTAINER_ENV_VAR, env.get(CONTAINER_ENV_VAR))
        return True

    return False
