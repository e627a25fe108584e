#!/usr/bin/env python3
"""Run repository checks for image_cropper: ruff, pyright, then pytest.

Exits with the first failing tool's return code. The Qt bridge tests run
headless via QT_QPA_PLATFORM=offscreen and are skipped when PySide6 is absent.
"""

from __future__ import annotations

import argparse
import os
import subprocess
import sys


def run(cmd: list[str], env: dict[str, str] | None = None) -> int:
    print("=>", " ".join(cmd))
    return subprocess.run(cmd, check=False, env=env).returncode


def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--no-tests", action="store_true", help="Skip running pytest")
    parser.add_argument("--fix", action="store_true", help="Let ruff apply fixes")
    parser.add_argument("pytest_args", nargs=argparse.REMAINDER, help="Extra pytest args after --")
    args = parser.parse_args()

    ruff = [sys.executable, "-m", "ruff", "check", "image_cropper", "tests"]
    if args.fix:
        ruff.append("--fix")
    rc = run(ruff)
    if rc != 0:
        print("ruff failed")
        return rc

    rc = run([sys.executable, "-m", "pyright"]) if sys.platform != "win32" else run(["pyright"])
    if rc != 0:
        print("pyright failed")
        return rc

    if not args.no_tests:
        env = os.environ.copy()
        env.setdefault("QT_QPA_PLATFORM", "offscreen")
        extra = [a for a in args.pytest_args if a != "--"]
        rc = run([sys.executable, "-m", "pytest", "-q", *extra], env=env)
        if rc != 0:
            print("pytest failed")
            return rc

    print("All checks passed")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
