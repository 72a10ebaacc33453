"""Identity registry used to detect shared and recursive values during export."""

from typing import Any, Dict, Optional, Tuple


class IdentityRegistry:
    """
    Assigns sequential reference ids to composite values by identity.
    
    A registry lives for exactly one top-level export call. Values are keyed by
    ``id()`` and never compared by equality, so two equal but distinct lists
    get different ids. The registry keeps a reference to every value it has
    seen so that an id cannot be recycled by a temporary object mid-export.
    """
    
    def __init__(self):
        self._entries: Dict[int, Tuple[int, Any]] = {}
    
    def contains(self, value: Any) -> Optional[int]:
        """Return the reference id of a previously added value, or None."""
        entry = self._entries.get(id(value))
        if entry is None:
            return None
        return entry[0]
    
    def add(self, value: Any) -> int:
        """
        Register a value and return its reference id.
        
        Ids are dense and start at 1, in the order values are first added.
        Adding a value twice returns the id it already has.
        """
        existing = self.contains(value)
        if existing is not None:
            return existing
        
        ref_id = len(self._entries) + 1
        self._entries[id(value)] = (ref_id, value)
        return ref_id
    
    def __len__(self) -> int:
        return len(self._entries)
    
    def __contains__(self, value: Any) -> bool:
        return id(value) in self._entries
    
    def __repr__(self) -> str:
        return f"IdentityRegistry(entries={len(self._entries)})"
