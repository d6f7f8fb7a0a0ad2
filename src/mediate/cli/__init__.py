"""Command line interface for mediate."""
