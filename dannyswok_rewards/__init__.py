"""dannyswok-rewards — Fortune-cookie rewards and collectible-set service."""
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("dannyswok-rewards")
except PackageNotFoundError:
    __version__ = "0.0.0"
