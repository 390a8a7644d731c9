"""External collaborator adapters (content, rendering, publishing, metrics)."""
