"""CLI command implementations. Each run_* function returns an exit code."""
