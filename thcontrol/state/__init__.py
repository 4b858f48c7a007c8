"""Local state store package."""

from thcontrol.state.store import LedgerEntry, LocalStateStore

__all__ = ["LedgerEntry", "LocalStateStore"]
