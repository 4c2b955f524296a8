"""
Server-side state: the published encrypted-output cache and the coalescing
scheduler that keeps it fresh.
"""

from .coalescer import ReloadCoalescer, ThreadedReloadCoalescer
from .models import OutputRange
from .outputs import EncryptedOutputStore

__all__ = ["EncryptedOutputStore", "OutputRange", "ReloadCoalescer", "ThreadedReloadCoalescer"]
