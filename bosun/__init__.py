"""Config resolution, action plans, issue ordering and preview environment resolution."""

__version__ = "0.1.0"
__all__ = ["actions", "config", "issues", "preview", "preview_resolve", "prompt", "schema"]