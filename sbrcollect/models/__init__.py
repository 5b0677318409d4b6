"""
sbrcollect/models: record types and their dict mapping.
"""

from sbrcollect.models.record import (
    Addr,
    Call,
    CallLog,
    MessageLog,
    MMS,
    Part,
    SMS,
)
from sbrcollect.models.serialization import record_from_dict, record_to_dict

__all__ = [
    "Addr",
    "Call",
    "CallLog",
    "MessageLog",
    "MMS",
    "Part",
    "SMS",
    "record_from_dict",
    "record_to_dict",
]
