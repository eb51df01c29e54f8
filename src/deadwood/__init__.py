"""Deadwood: unreferenced class and method rules with frozen baselines."""
from .config import __version__

__all__ = ["__version__"]
