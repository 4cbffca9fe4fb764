"""Command-line interface for the Tabichan client."""
