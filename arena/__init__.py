"""Arena game backend libraries."""
