"""Small file helpers shared across packages."""
