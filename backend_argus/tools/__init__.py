"""Command-line tools for backend_argus."""
