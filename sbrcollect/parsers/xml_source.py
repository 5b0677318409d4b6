"""
sbrcollect/parsers/xml_source.py
Reading SMS Backup & Restore XML files.

BOM and encoding: UTF-8-BOM is stripped, UTF-16-LE/BE is decoded by BOM,
anything else must be UTF-8. Android export format varies by version.

Streaming: files are walked with ET.iterparse so large backups (>200MB)
do not have to be built into one tree.
"""

import io
import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Iterator, Tuple

BOM_UTF8     = b'\xef\xbb\xbf'
BOM_UTF16_LE = b'\xff\xfe'
BOM_UTF16_BE = b'\xfe\xff'


class BackupParseError(ValueError):
    """A backup file is not well-formed or not the expected document."""


_BOMS = (
    (BOM_UTF8,     'utf-8'),
    (BOM_UTF16_LE, 'utf-16-le'),
    (BOM_UTF16_BE, 'utf-16-be'),
)


def read_xml_text(path: Path) -> str:
    """
    Decode a backup file by its BOM, UTF-8 when there is none.
    Fields are stored verbatim, so undecodable bytes raise BackupParseError
    instead of being replaced.
    """
    raw = path.read_bytes()
    encoding, offset = 'utf-8', 0
    for bom, codec in _BOMS:
        if raw.startswith(bom):
            encoding, offset = codec, len(bom)
            break
    try:
        return raw[offset:].decode(encoding)
    except UnicodeDecodeError as e:
        raise BackupParseError(f"{path.name} is not valid {encoding}: {e}") from e


def strip_stylesheet(content: str) -> str:
    return re.sub(r'<\?xml-stylesheet[^?]*\?>', '', content)


def iter_backup(path: Path, root_tag: str) -> Iterator[Tuple[str, ET.Element]]:
    """
    Yield (event, element) for 'start' and 'end' events of a backup file.
    The first yielded element is the document root; a root other than
    root_tag, or malformed XML, raises BackupParseError.
    OSError from reading the file propagates.
    """
    content = strip_stylesheet(read_xml_text(path))
    stream  = io.StringIO(content)
    seen_root = False
    try:
        for event, el in ET.iterparse(stream, events=('start', 'end')):
            if not seen_root:
                if el.tag != root_tag:
                    raise BackupParseError(
                        f"{path.name}: expected <{root_tag}> document, got <{el.tag}>"
                    )
                seen_root = True
            yield event, el
    except ET.ParseError as e:
        raise BackupParseError(f"XML parse error in {path.name}: {e}") from e
