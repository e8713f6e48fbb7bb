"""Command-line summaries built on top of the parsers."""
