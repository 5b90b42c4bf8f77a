"""
Stick-slip block chain (earthquake toy model) simulator package.

The __init__ stays lightweight so that `import quake_simulator` and
`quake-sim --help` work without pulling in the numerical engine.
"""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("quake-block-simulator")
except PackageNotFoundError:  # during editable installs
    __version__ = "0.0.0"

__all__ = ["__version__"]
