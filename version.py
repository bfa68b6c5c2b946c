"""Derive the package version from `git describe`, falling back to RELEASE-VERSION."""

import os
import subprocess

__all__ = ("get_git_version",)

RELEASE_VERSION_FILE = os.path.join(os.path.dirname(os.path.realpath(__file__)), "RELEASE-VERSION")
DEFAULT_VERSION = "0.1.0"


def call_git_describe(abbrev=7):
    try:
        output = subprocess.run(
            ["git", "describe", "--tags", f"--abbrev={abbrev}"],
            cwd=os.path.dirname(os.path.realpath(__file__)),
            capture_output=True,
            text=True,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError):
        return None
    # PEP 440: v1.2.3-4-gabcdef0 -> 1.2.3.post4+gabcdef0
    parts = output.stdout.strip().lstrip("v").split("-")
    if len(parts) >= 3:
        return f"{'-'.join(parts[:-2])}.post{parts[-2]}+{parts[-1]}"
    return parts[0] or None


def read_release_version():
    try:
        with open(RELEASE_VERSION_FILE) as f:
            return f.readline().strip() or None
    except OSError:
        return None


def get_git_version(abbrev=7):
    return call_git_describe(abbrev) or read_release_version() or DEFAULT_VERSION
