"""Running FRR's vtysh and reading its answers."""

from __future__ import annotations

import json
import subprocess
from collections.abc import Callable

VTYSH_PATH = "/usr/bin/vtysh"

Cli = Callable[[str], str]
"""A function that runs one vtysh command and returns its output."""


class VtyshError(RuntimeError):
    """vtysh could not be run or reported a failure."""

    def __init__(self, message: str, output: str = "") -> None:
        super().__init__(message)
        self.output = output


def run_vtysh(args: str) -> str:
    """Run a single vtysh command and return its combined output."""
    try:
        proc = subprocess.run(
            [VTYSH_PATH, "-c", args],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            check=False,
        )
    except OSError as exc:
        raise VtyshError(f"failed to run {VTYSH_PATH}: {exc}") from exc
    if proc.returncode != 0:
        raise VtyshError(f"{VTYSH_PATH} exited with status {proc.returncode}", proc.stdout)
    return proc.stdout


def vrfs(frr_cli: Cli) -> list[str]:
    """The names of the VRFs BGP is running in."""
    output = frr_cli("show bgp vrf all json")
    try:
        data = json.loads(output)
    except json.JSONDecodeError as exc:
        raise ValueError(f"failed to parse vrfs: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"failed to parse vrfs: expected an object, got {type(data).__name__}")
    return list(data)