"""HTTP middleware for the SafeLine monitor."""
