"""Road hazard monitor backend."""
