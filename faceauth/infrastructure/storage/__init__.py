"""Template store implementations."""
from .json_store import JsonFileTemplateStore
from .memory import InMemoryTemplateStore
from .models import SCHEMA_VERSION, TemplateRecord, decode_template, encode_template

__all__ = [
    "InMemoryTemplateStore",
    "JsonFileTemplateStore",
    "SCHEMA_VERSION",
    "TemplateRecord",
    "decode_template",
    "encode_template",
]
