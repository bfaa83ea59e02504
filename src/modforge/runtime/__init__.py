"""Process-wide runtime locations for modforge.

This subpackage resolves where modforge keeps data that outlives one run,
such as cached version resolutions.
"""

from modforge.runtime.home import get_cache_dir

__all__ = [
    "get_cache_dir",
]
