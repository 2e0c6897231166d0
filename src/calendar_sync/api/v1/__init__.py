"""Backend functions, version 1."""
