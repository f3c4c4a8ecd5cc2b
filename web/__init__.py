"""Flask JSON API for style search and inventory lookups."""
