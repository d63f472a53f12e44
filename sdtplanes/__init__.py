# sdtplanes/__init__.py

from .sdtplanes import *
from .sdtplanes import __all__, __doc__, __version__

# constants are repeated for documentation

__version__ = __version__
"""Sdtplanes version string."""
