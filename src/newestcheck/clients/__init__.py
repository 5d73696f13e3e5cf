"""Page sources for the listing."""
