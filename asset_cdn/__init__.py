"""Static asset server: validated paths, immutable caching, conditional GET."""
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("asset-cdn")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"
