"""Semantic version validation (https://semver.org, 2.0.0 grammar)."""

from __future__ import annotations

import re


_SEMVER_RE = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
    r"(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)


def is_valid(version: str) -> bool:
    return _SEMVER_RE.match(version) is not None


def sort_key(version: str) -> tuple:
    """Key ordering versions by semver precedence; build metadata is ignored."""

    m = _SEMVER_RE.match(version)
    if m is None:
        raise ValueError(f"invalid semver: {version}")
    major, minor, patch, pre, _build = m.groups()
    if pre is None:
        # A release ranks above any of its pre-releases.
        pre_key: tuple = (1,)
    else:
        pre_key = (
            0,
            tuple((0, int(p), "") if p.isdigit() else (1, 0, p) for p in pre.split(".")),
        )
    return (int(major), int(minor), int(patch), pre_key)
