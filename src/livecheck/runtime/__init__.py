"""Runtime collaborators: clock synchronization."""
