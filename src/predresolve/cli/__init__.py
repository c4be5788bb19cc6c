"""Command-line interface (predres)."""
