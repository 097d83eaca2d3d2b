"""
Resource discovery shared by the package (CPU count, optional modules).
"""
from functools import cached_property, lru_cache
from importlib import import_module
import os


# Classes --------------------------------------------------------------------------------------------------------------
class Resources:
    """
    Describes the machine the package runs on.

    Attributes:
        package (str): The package name.
    """
    def __init__(self) -> None:
        self.package = __name__.split('.')[0]

    @cached_property
    def available_cpus(self) -> int:
        """Returns the number of CPUs usable by this process (at least 1)."""
        try: n = os.process_cpu_count()
        except AttributeError: n = os.cpu_count()
        return n or 1

    @staticmethod
    @lru_cache(maxsize=None)
    def has_module(module_name: str) -> bool:
        """Checks if a python package is installed."""
        try:
            import_module(module_name)
            return True
        except ImportError: return False


# Constants ------------------------------------------------------------------------------------------------------------
RESOURCES = Resources()
