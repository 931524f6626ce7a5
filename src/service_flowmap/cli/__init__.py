"""Command-line interface for service-flowmap."""
