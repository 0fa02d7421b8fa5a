"""Command-line interface for entalk."""
