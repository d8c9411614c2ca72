"Local data layer for the Aural audio-sharing app."

from importlib import metadata

__all__ = ["__version__", "AuralApp", "AuralStore"]


def __getattr__(name: str):
    if name == "__version__":
        try:
            return metadata.version("aural-store")
        except metadata.PackageNotFoundError:  # pragma: no cover - during editable dev installs
            return "0.0.0"
    if name == "AuralApp":
        from .app import AuralApp

        return AuralApp
    if name == "AuralStore":
        from .store import AuralStore

        return AuralStore
    raise AttributeError(name)
