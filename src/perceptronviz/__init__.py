"""Interactive perceptron teaching tool: learning and geometry core."""
from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("perceptronviz")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
