"""Caller identity carried explicitly into background work."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class CallerIdentity:
    username: str
    roles: frozenset[str] = frozenset()


SYSTEM_IDENTITY = CallerIdentity(username="system")
