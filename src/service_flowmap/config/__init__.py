"""Configuration for service-flowmap."""
