"""
sbrcollect/parsers: SMS Backup & Restore XML decoders.
"""

from sbrcollect.parsers.call_parser import parse_call_file
from sbrcollect.parsers.sms_parser import parse_message_file
from sbrcollect.parsers.xml_source import BackupParseError

__all__ = [
    "BackupParseError",
    "parse_call_file",
    "parse_message_file",
]
