"""Command handlers; each module exposes run(args) -> int."""
