"""Route modules mounted under /api/v1."""
