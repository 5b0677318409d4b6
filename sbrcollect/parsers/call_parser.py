"""
sbrcollect/parsers/call_parser.py
Decodes SMS Backup & Restore call log XML files (calls-*.xml) into a CallLog.
Attributes are kept verbatim, including the literal 'null' the tool writes.
"""

import logging
from pathlib import Path
from typing import Union

from sbrcollect.models.record import Call, CallLog
from sbrcollect.models.serialization import record_from_dict
from sbrcollect.parsers.xml_source import iter_backup

logger = logging.getLogger(__name__)

ROOT_TAG = 'calls'


def parse_call_file(path: Union[str, Path]) -> CallLog:
    """
    Parse one calls XML file.
    Raises BackupParseError on malformed XML, OSError if unreadable.
    """
    path = Path(path)
    log  = CallLog()

    for event, el in iter_backup(path, ROOT_TAG):
        if event == 'start':
            if el.tag == ROOT_TAG:
                log.count       = el.get('count', '')
                log.backup_set  = el.get('backup_set', '')
                log.backup_date = el.get('backup_date', '')
                log.type        = el.get('type', '')
            continue
        if el.tag == 'call':
            log.calls.append(record_from_dict(Call, el.attrib))
            el.clear()

    if log.count and log.count != str(len(log.calls)):
        logger.warning(f"{path.name} declares {log.count} calls, found {len(log.calls)}")
    logger.info(f"Parsed {len(log.calls)} calls from {path.name}")
    return log
