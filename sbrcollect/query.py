"""
sbrcollect/query.py
Substring search over a store by phone number or contact name.

USAGE:
  sbr-query --base-directory ./store --number 5550001
  sbr-query --base-directory ./store --name "Test Contact"
  sbr-query --collection-file ./collection.json --number +1612

A record matches when any non-empty term is contained in its number or
address (for MMS, any of its addrs too) or in its contact name.
"""

import argparse
import logging
import sys
from typing import Iterable, List, Optional

from sbrcollect.cli import RUN_ERRORS, add_store_arguments, open_store, setup_logging
from sbrcollect.grouped_collection import GroupedCollection
from sbrcollect.models.record import Call, MMS, SMS

logger = logging.getLogger(__name__)


def _contains(value: str, term: str) -> bool:
    return bool(term) and term in (value or '')


def find_calls(calls: Iterable[Call], number: str = '', name: str = '') -> List[Call]:
    return [
        c for c in calls
        if _contains(c.number, number) or _contains(c.contact_name, name)
    ]


def find_sms(sms: Iterable[SMS], number: str = '', name: str = '') -> List[SMS]:
    return [
        s for s in sms
        if _contains(s.address, number) or _contains(s.contact_name, name)
    ]


def find_mms(mms: Iterable[MMS], number: str = '', name: str = '') -> List[MMS]:
    return [
        m for m in mms
        if _contains(m.address, number)
        or any(_contains(a.address, number) for a in m.addrs)
        or _contains(m.contact_name, name)
    ]


def format_call(c: Call) -> str:
    return f"Call: {c.readable_date or c.date}  {c.number}  {c.contact_name}  {c.duration}s  type={c.type}"

def format_sms(s: SMS) -> str:
    return f"SMS:  {s.readable_date or s.date}  {s.address}  {s.contact_name}  {s.body}"

def format_mms(m: MMS) -> str:
    texts = [p.text for p in m.parts if p.ct == 'text/plain' and p.text and p.text != 'null']
    return f"MMS:  {m.readable_date or m.date}  {m.address}  {m.contact_name}  {' '.join(texts)}"


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        prog        = 'sbr-query',
        description = 'Search a store by phone number or contact name',
    )
    add_store_arguments(parser)
    parser.add_argument('--number', '-n', default='', help='Substring of the phone number')
    parser.add_argument('--name',         default='', help='Substring of the contact name')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if not args.number and not args.name:
        logger.error("you have to provide either number or name")
        sys.exit(1)

    try:
        store = open_store(args, create=False)
        if isinstance(store, GroupedCollection):
            calls, sms, mms = store.all_calls(), store.all_sms(), store.all_mms()
        else:
            calls, sms, mms = store.calls, store.sms, store.mms
    except RUN_ERRORS as e:
        logger.error(f"error running query: {e}")
        sys.exit(1)

    found = 0
    for c in find_calls(calls, args.number, args.name):
        print(format_call(c))
        found += 1
    for s in find_sms(sms, args.number, args.name):
        print(format_sms(s))
        found += 1
    for m in find_mms(mms, args.number, args.name):
        print(format_mms(m))
        found += 1
    logger.info(f"{found} matching record(s)")


if __name__ == '__main__':
    main()
