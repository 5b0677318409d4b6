"""
sbrcollect/parsers/sms_parser.py
Decodes SMS Backup & Restore message XML files (sms-*.xml) into a MessageLog.
Handles both <sms> and <mms> nodes; MMS keep their <parts> and <addrs>
children in document order.
"""

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Union

from sbrcollect.models.record import MessageLog, MMS, SMS
from sbrcollect.models.serialization import record_from_dict
from sbrcollect.parsers.xml_source import iter_backup

logger = logging.getLogger(__name__)

ROOT_TAG = 'smses'


def parse_message_file(path: Union[str, Path]) -> MessageLog:
    """
    Parse one messages XML file.
    Raises BackupParseError on malformed XML, OSError if unreadable.
    """
    path = Path(path)
    log  = MessageLog()

    for event, el in iter_backup(path, ROOT_TAG):
        if event == 'start':
            if el.tag == ROOT_TAG:
                log.count       = el.get('count', '')
                log.backup_set  = el.get('backup_set', '')
                log.backup_date = el.get('backup_date', '')
                log.type        = el.get('type', '')
            continue
        if el.tag == 'sms':
            log.sms.append(record_from_dict(SMS, el.attrib))
            el.clear()
        elif el.tag == 'mms':
            log.mms.append(_mms_from_element(el))
            el.clear()

    total = len(log.sms) + len(log.mms)
    if log.count and log.count != str(total):
        logger.warning(f"{path.name} declares {log.count} messages, found {total}")
    logger.info(f"Parsed {len(log.sms)} SMS and {len(log.mms)} MMS from {path.name}")
    return log


def _mms_from_element(el: ET.Element) -> MMS:
    data = dict(el.attrib)
    data['parts'] = [dict(p.attrib) for p in el.iterfind('parts/part')]
    data['addrs'] = [dict(a.attrib) for a in el.iterfind('addrs/addr')]
    return record_from_dict(MMS, data)
