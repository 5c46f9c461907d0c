"""Remote ledger adapters."""

from .base import RemoteLedger
from .memory import InMemoryLedger
from .supabase import SupabaseLedger

__all__ = ["InMemoryLedger", "RemoteLedger", "SupabaseLedger"]
