"""spectree - normalization, navigation and reparenting of spec hierarchies."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("spectree")
except PackageNotFoundError:
    # Package not installed (development mode without editable install)
    __version__ = "0.1.0"

__all__ = ["__version__"]
