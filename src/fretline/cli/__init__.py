"""Command line interface for fretline."""
