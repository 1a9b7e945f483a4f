"""User-state snapshot and decision record types."""
