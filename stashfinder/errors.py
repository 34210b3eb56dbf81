from __future__ import annotations


class StashFinderError(Exception):
    """Base class for every error raised by the scanner."""


class ConfigError(StashFinderError, ValueError):
    """Invalid radius, thresholds or other settings; raised before any file is read."""


class WorldNotFoundError(StashFinderError):
    def __init__(self, path: str, reason: str = "does not exist") -> None:
        super().__init__(f"World root {path} {reason}")
        self.path = path


class RegionDecodeError(StashFinderError):
    def __init__(self, message: str, source: str) -> None:
        super().__init__(message)
        self.source = source


class ChunkDecodeError(RegionDecodeError):
    pass
