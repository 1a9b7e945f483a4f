"""Tool-effectiveness learning across flights."""
