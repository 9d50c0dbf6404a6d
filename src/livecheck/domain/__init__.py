"""Domain model: time helpers and the in-memory manifest graph."""
