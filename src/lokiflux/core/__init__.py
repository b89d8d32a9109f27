"""Core domain: models, aggregation, encoding and ports."""
