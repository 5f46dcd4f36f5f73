"""Command-line interface for docledger."""
