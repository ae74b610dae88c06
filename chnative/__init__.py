"""ClickHouse column types, validation and Native format column encoding."""

__version__ = "0.1.0"
__all__ = ["types", "validate", "scalars", "deserialize", "serialize"]