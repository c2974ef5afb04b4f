"""Command-line interface for blockmeta."""
