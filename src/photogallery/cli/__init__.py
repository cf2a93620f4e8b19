"""Command line tasks (invoke) for maintaining a gallery."""
