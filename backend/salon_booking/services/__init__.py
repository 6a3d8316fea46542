"""Service layer: calendar resolution, availability and booking."""
