from __future__ import annotations


class ViewerError(Exception):
    """Base class for errors reported back to the user as a status message."""


class LoadError(ViewerError):
    """A layer source could not be fetched or is not a FeatureCollection."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"No se pudo cargar: {source} ({reason})")


class RegistryError(ViewerError):
    """Unknown layer key."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"No existe capa registrada: {key}")
