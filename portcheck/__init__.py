"""portcheck — static host-port collision detection for compose files."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("portcheck")
except PackageNotFoundError:
    __version__ = "0.0.0.dev0"
