"""Local HTTP API for rendering Markdown."""
