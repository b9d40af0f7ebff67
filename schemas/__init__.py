"""
Pydantic schemas for data validation and serialization.

Schemas:
    normalized: Normalized entities produced by the mappers (one per dataset)
    api: API endpoint response models

Validation:
    Normalized schemas strip strings (blank becomes None), enforce column
    lengths and expose their natural key through `key_value()`.
"""

__all__ = [
    "normalized",
    "api",
]
