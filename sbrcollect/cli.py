"""
sbrcollect/cli.py
Command-line interface: merge SMS Backup & Restore exports into a store.

USAGE:
  sbr-collect --base-directory ./store --group-period 1 --call-file calls.xml --message-file sms.xml
  sbr-collect --collection-file ./collection.json --call-file calls.xml
  sbr-collect --base-directory ./store --use-config --message-file sms.xml --backup

GROUP PERIODS:
  0  one file        store/collection.json
  1  monthly         store/2024/01.json
  2  yearly          store/2024.json

Flags can also be given through SBR_COLLECTION_* environment variables:
  SBR_COLLECTION_BASE_DIRECTORY, SBR_COLLECTION_COLLECTION_FILE,
  SBR_COLLECTION_GROUP_PERIOD, SBR_COLLECTION_BACKUP, SBR_COLLECTION_USE_CONFIG
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Dict, List, Optional, Union

from sbrcollect.collection import Collection, CollectionLoadError, load_collection
from sbrcollect.config import env_flag, env_value, load_settings, resolve_settings
from sbrcollect.grouped_collection import GroupedCollection, GroupedCollectionConfig
from sbrcollect.parsers import BackupParseError, parse_call_file, parse_message_file

logger = logging.getLogger(__name__)

GREEN = '\033[92m'
CYAN  = '\033[96m'
RESET = '\033[0m'
BOLD  = '\033[1m'

# Errors that end a run with exit status 1
RUN_ERRORS = (OSError, ValueError, CollectionLoadError, BackupParseError)

Store = Union[Collection, GroupedCollection]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog        = 'sbr-collect',
        description = 'Merge SMS Backup & Restore exports into a deduplicated JSON store',
        formatter_class = argparse.RawDescriptionHelpFormatter,
    )
    add_store_arguments(parser)
    parser.add_argument(
        '--call-file',
        type    = Path,
        help    = 'Call log export to import (calls-*.xml)',
    )
    parser.add_argument(
        '--message-file',
        type    = Path,
        help    = 'Message export to import (sms-*.xml)',
    )
    parser.add_argument(
        '--backup', '-b',
        action  = 'store_true',
        default = env_flag('BACKUP'),
        help    = 'Copy each store file to <name>.<timestamp>.json before overwriting it',
    )
    parser.add_argument(
        '--use-config',
        action  = 'store_true',
        default = env_flag('USE_CONFIG'),
        help    = 'Read (or create) sbr.config in the base directory',
    )
    parser.add_argument(
        '--verbose', '-v',
        action  = 'store_true',
        help    = 'Enable debug logging and report every added record',
    )
    return parser


def add_store_arguments(parser: argparse.ArgumentParser) -> None:
    """Arguments selecting the store, shared with sbr-query."""
    parser.add_argument(
        '--base-directory', '-d',
        type    = Path,
        default = env_value('BASE_DIRECTORY'),
        help    = 'Directory of a grouped store',
    )
    parser.add_argument(
        '--collection-file', '-f',
        type    = Path,
        default = env_value('COLLECTION_FILE'),
        help    = 'Single JSON store file (instead of --base-directory)',
    )
    parser.add_argument(
        '--group-period', '-g',
        type    = int,
        choices = (0, 1, 2),
        default = env_value('GROUP_PERIOD'),
        help    = '0 for no grouping, 1 for monthly and 2 for yearly',
    )


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level   = logging.DEBUG if verbose else logging.INFO,
        format  = '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt = '%H:%M:%S',
    )


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    t0 = time.time()
    try:
        summary = run(args)
    except RUN_ERRORS as e:
        logger.error(f"error running collection: {e}")
        sys.exit(1)

    _print(f"\n{BOLD}{GREEN}✓ Complete{RESET} in {_elapsed(t0)}")
    _print(f"  Calls added    : {summary['calls']:,}")
    _print(f"  Messages added : {summary['messages']:,}")
    _print(f"  Files written  : {summary['files']:,}")


def run(args: argparse.Namespace) -> Dict[str, int]:
    """Open the store, import the given files, save. Errors propagate."""
    store = open_store(args, create=True)
    summary = {'calls': 0, 'messages': 0, 'files': 0}

    if args.message_file and args.message_file.is_file():
        _step(f"Using {CYAN}{args.message_file}{RESET} as message file")
        summary['messages'] = store.add_messages(parse_message_file(args.message_file))
    else:
        logger.info(f"no message file to import ({args.message_file})")

    if args.call_file and args.call_file.is_file():
        _step(f"Using {CYAN}{args.call_file}{RESET} as call file")
        summary['calls'] = store.add_calls(parse_call_file(args.call_file).get_calls())
    else:
        logger.info(f"no call file to import ({args.call_file})")

    if isinstance(store, GroupedCollection):
        summary['files'] = len(store.save())
    elif store.dirty or not args.collection_file.exists():
        store.save(args.collection_file)
        summary['files'] = 1
    return summary


def open_store(args: argparse.Namespace, create: bool) -> Store:
    """
    Open the store selected by --base-directory or --collection-file.
    With create=False a missing store is an error instead of a new one.
    """
    base_directory  = args.base_directory
    collection_file = args.collection_file
    verbose         = getattr(args, 'verbose', False)
    backup          = getattr(args, 'backup', False)
    use_config      = getattr(args, 'use_config', False)

    if base_directory and collection_file:
        raise ValueError("use either a base directory or a collection file, not both")
    if not base_directory and not collection_file:
        raise ValueError("you have to provide a base directory or a collection file")

    if collection_file:
        if use_config:
            raise ValueError("--use-config needs --base-directory")
        if collection_file.exists():
            logger.info(f"using {str(collection_file)!r} as collection file")
            return load_collection(collection_file, verbose=verbose, backup=backup)
        if not create:
            raise FileNotFoundError(f"collection file not found: {collection_file}")
        return Collection(verbose=verbose, backup=backup)

    if create:
        settings = resolve_settings(
            base_directory = base_directory,
            group_period   = args.group_period,
            backup         = backup,
            use_config     = use_config,
        )
    else:
        if not base_directory.is_dir():
            raise FileNotFoundError(f"base directory not found: {base_directory}")
        # read-only callers fall back to the store's own settings, never write them
        settings = None
        if args.group_period is None:
            settings = load_settings(base_directory)
        if settings is None:
            settings = resolve_settings(base_directory, args.group_period, backup=False)
    return GroupedCollection(GroupedCollectionConfig(
        base_directory = base_directory,
        group_period   = settings.group_period,
        verbose        = verbose,
        backup         = settings.backup,
    ))


# ── PRINT HELPERS ────────────────────────────────────────────

def _step(msg):  _print(f"  {CYAN}→{RESET} {msg}")
def _print(msg): print(msg)

def _elapsed(t0: float) -> str:
    s = time.time() - t0
    return f"{s:.1f}s" if s < 60 else f"{int(s//60)}m {int(s%60)}s"


if __name__ == '__main__':
    main()
