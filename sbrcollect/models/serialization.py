"""
sbrcollect/models/serialization.py
Maps records to and from plain dicts keyed by the backup tool's
attribute names. The JSON store and the XML decoder share this mapping,
so a record reads the same whether it came from XML attributes or JSON.
"""

from dataclasses import Field, fields
from typing import Any, Dict, Mapping, Type, TypeVar

T = TypeVar('T')


def attr_name(f: Field) -> str:
    return f.metadata.get('attr', f.name)


def record_to_dict(record: Any) -> Dict[str, Any]:
    """Serialize a record, nested part/addr tuples become lists of dicts."""
    out: Dict[str, Any] = {}
    for f in fields(record):
        value = getattr(record, f.name)
        if 'item' in f.metadata:
            out[attr_name(f)] = [record_to_dict(item) for item in value]
        else:
            out[attr_name(f)] = value
    return out


def record_from_dict(cls: Type[T], data: Mapping[str, Any]) -> T:
    """
    Build a record of type cls from a mapping of attribute names.
    Unknown keys are ignored, missing keys default to ''.
    Raises TypeError when a value has the wrong shape.
    """
    if not isinstance(data, Mapping):
        raise TypeError(f"{cls.__name__} entry must be an object, got {type(data).__name__}")

    kwargs: Dict[str, Any] = {}
    for f in fields(cls):
        name = attr_name(f)
        if name not in data:
            continue
        value = data[name]
        item_type = f.metadata.get('item')
        if item_type is not None:
            if value is None:
                value = []
            if not isinstance(value, list):
                raise TypeError(f"{cls.__name__}.{name} must be a list, got {type(value).__name__}")
            kwargs[f.name] = tuple(record_from_dict(item_type, item) for item in value)
        else:
            if not isinstance(value, str):
                raise TypeError(f"{cls.__name__}.{name} must be a string, got {type(value).__name__}")
            kwargs[f.name] = value
    return cls(**kwargs)
