"""Background runtime tasks."""
