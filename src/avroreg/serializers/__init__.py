"""Serializer utilities for converting between schema JSON and avroreg types."""

from .type_deserializer import TypeDeserializer
from .type_serializer import TypeSerializer

__all__ = [
    "TypeDeserializer",
    "TypeSerializer",
]
