"""Infrastructure layer: persistence, settings and event publishing."""
