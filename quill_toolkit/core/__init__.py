"""Core conversion logic: models, parsing, conversion, generation and services."""
