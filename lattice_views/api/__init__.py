"""HTTP API for view documents."""
