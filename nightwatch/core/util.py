from __future__ import annotations

import os
import shutil
import subprocess
from dataclasses import dataclass
from typing import Iterable, Union


@dataclass(frozen=True)
class CmdResult:
    code: int
    stdout: str
    stderr: str


def find_shell() -> str | None:
    shell = os.environ.get("SHELL")
    if shell:
        return shell
    return shutil.which("sh")


def run_shell(cmd: str, cwd: str | None = None) -> CmdResult:
    """Run *cmd* through the user's shell.

    Output is captured as bytes and decoded the way the OS decodes file
    names, so paths that are not valid in the locale encoding survive.
    """
    shell = find_shell()
    if shell is None:
        raise FileNotFoundError("no shell found (set $SHELL or put sh on PATH)")
    proc = subprocess.run(
        [shell, "-c", cmd],
        cwd=cwd,
        env=os.environ.copy(),
        capture_output=True,
        check=False,
    )
    stderr = proc.stderr.decode(errors="replace").strip()
    return CmdResult(proc.returncode, os.fsdecode(proc.stdout), stderr)


def split_lines(lines: Iterable[Union[str, bytes]]) -> list[str]:
    out = []
    for line in lines:
        if isinstance(line, bytes):
            line = os.fsdecode(line)
        line = line.rstrip("\r\n")
        if line.strip():
            out.append(line)
    return out
