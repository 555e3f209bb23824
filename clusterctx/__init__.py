"""clusterctx - cluster context aggregation and reporting."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("clusterctx")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
