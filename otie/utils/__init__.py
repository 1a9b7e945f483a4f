"""Configuration and domain constants."""
