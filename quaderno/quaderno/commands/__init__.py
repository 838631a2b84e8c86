"""Command implementations behind the quaderno CLI."""
