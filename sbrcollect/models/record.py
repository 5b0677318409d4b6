"""
sbrcollect/models/record.py
Shared dataclass schema for SMS Backup & Restore records.
Parsers, collections and the query tool all use these types. Data only.

Every field is an opaque string copied verbatim from the backup file.
Field metadata carries the backup tool's attribute name where it differs
from the Python name, plus the element type of nested record tuples.

Schema: https://synctech.com.au/sms-backup-restore/fields-in-xml-backup-files/
"""

from dataclasses import dataclass, field
from typing import List, Tuple


def _attr(name: str):
    return field(default='', metadata={'attr': name})


def _items(item_type: type):
    return field(default=(), metadata={'item': item_type})


# ── CALL LOG ─────────────────────────────────────────────────

@dataclass(frozen=True)
class Call:
    """A single call log entry."""
    number:                      str = ''
    duration:                    str = ''
    date:                        str = ''   # epoch milliseconds
    type:                        str = ''
    presentation:                str = ''
    subscription_id:             str = ''
    post_dial_digits:            str = ''
    subscription_component_name: str = ''
    readable_date:               str = ''
    contact_name:                str = ''


# ── MESSAGES ─────────────────────────────────────────────────

@dataclass(frozen=True)
class SMS:
    """A plain short message."""
    protocol:       str = ''
    address:        str = ''
    date:           str = ''   # epoch milliseconds
    type:           str = ''
    subject:        str = ''
    body:           str = ''
    toa:            str = ''
    sc_toa:         str = ''
    service_center: str = ''
    read:           str = ''
    status:         str = ''
    locked:         str = ''
    date_sent:      str = ''
    sub_id:         str = ''
    readable_date:  str = ''
    contact_name:   str = ''


@dataclass(frozen=True)
class Part:
    """One part of an MMS (text, image, smil ...)."""
    seq:   str = ''
    ct:    str = ''   # content type
    name:  str = ''
    chset: str = ''
    cd:    str = ''
    fn:    str = ''
    cid:   str = ''
    cl:    str = ''
    ctt_s: str = ''
    ctt_t: str = ''
    text:  str = ''


@dataclass(frozen=True)
class Addr:
    """One sender/recipient address of an MMS."""
    address: str = ''
    type:    str = ''
    charset: str = ''


@dataclass(frozen=True)
class MMS:
    """A multimedia message. Owns its parts and addresses."""
    date:            str = ''   # epoch milliseconds
    snippet:         str = ''
    block_type:      str = ''
    ct_t:            str = ''
    source:          str = ''
    msg_box:         str = ''
    address:         str = ''
    sub_cs:          str = ''
    preview_type:    str = ''
    mx_id:           str = ''
    retr_st:         str = ''
    d_tm:            str = ''
    exp:             str = ''
    locked:          str = ''
    m_id:            str = ''
    out_time:        str = ''
    retr_txt:        str = ''
    date_sent:       str = ''
    read:            str = ''
    rpt_a:           str = ''
    ct_cls:          str = ''
    timed:           str = ''
    pri:             str = ''
    sub_id:          str = ''
    sync_state:      str = ''
    resp_txt:        str = ''
    ct_l:            str = ''
    sim_id:          str = ''
    d_rpt:           str = ''
    marker:          str = ''
    file_id:         str = ''
    msg_id:          str = _attr('_id')
    preview_data_ts: str = ''
    m_type:          str = ''
    mx_extension:    str = ''
    rr:              str = ''
    favorite_date:   str = ''
    sub:             str = ''
    read_status:     str = ''
    date_ms_part:    str = ''
    seen:            str = ''
    bind_id:         str = ''
    mx_id_v2:        str = ''
    advanced_seen:   str = ''
    resp_st:         str = ''
    text_only:       str = ''
    need_download:   str = ''
    st:              str = ''
    retr_txt_cs:     str = ''
    m_size:          str = ''
    mx_status:       str = ''
    tr_id:           str = ''
    mx_type:         str = ''
    deleted:         str = ''
    m_cls:           str = ''
    v:               str = ''
    account:         str = ''
    preview_data:    str = ''
    readable_date:   str = ''
    contact_name:    str = ''
    parts:           Tuple[Part, ...] = _items(Part)
    addrs:           Tuple[Addr, ...] = _items(Addr)


# ── DECODED BACKUP DOCUMENTS ─────────────────────────────────

@dataclass
class CallLog:
    """Contents of one calls-*.xml file."""
    count:       str        = ''
    backup_set:  str        = ''
    backup_date: str        = ''
    type:        str        = ''
    calls:       List[Call] = field(default_factory=list)

    def get_calls(self) -> List[Call]:
        return list(self.calls or [])


@dataclass
class MessageLog:
    """Contents of one sms-*.xml file."""
    count:       str       = ''
    backup_set:  str       = ''
    backup_date: str       = ''
    type:        str       = ''
    sms:         List[SMS] = field(default_factory=list)
    mms:         List[MMS] = field(default_factory=list)

    def get_sms(self) -> List[SMS]:
        return list(self.sms or [])

    def get_mms(self) -> List[MMS]:
        return list(self.mms or [])
