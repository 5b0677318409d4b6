#!/usr/bin/env python3
"""
run_collect.py
Convenience wrapper for the collector, usable without installing.

Usage:
    python run_collect.py --base-directory ./store --group-period 1 --call-file calls.xml
    python run_collect.py --collection-file collection.json --message-file sms.xml

All flags from sbrcollect.cli are supported.
"""

from sbrcollect.cli import main

if __name__ == '__main__':
    main()
