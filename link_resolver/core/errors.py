"""Custom exceptions."""

from __future__ import annotations


class ResolutionError(Exception):
    """Base exception for faults raised inside resolution collaborators."""

    def __init__(self, kind: str, link: str, detail: str | None = None) -> None:
        self.kind = kind
        self.link = link
        self.detail = detail
        message = f"{kind} for {link}: {detail or ''}"
        super().__init__(message)


class EngineLaunchError(ResolutionError):
    """The browser engine could not be started."""

    def __init__(self, detail: str | None = None) -> None:
        super().__init__("engine_launch_failed", "<engine>", detail)
