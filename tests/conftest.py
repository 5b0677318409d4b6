"""
tests/conftest.py
Shared synthetic backup exports for the command-line tests.
"""

import pytest

CALLS_XML = """<?xml version='1.0' encoding='UTF-8' standalone='yes' ?>
<calls count="3">
  <call number="+16125550001" duration="120" date="1704067200000"
        type="1" readable_date="Jan 1, 2024 12:00:00 AM"
        contact_name="Test Contact" />
  <call number="+16125550002" duration="0" date="1704067500000"
        type="3" readable_date="Jan 1, 2024 12:05:00 AM"
        contact_name="Other Contact" />
  <call number="+16125550001" duration="300" date="1715811200000"
        type="2" readable_date="May 15, 2024 10:13:20 PM"
        contact_name="Test Contact" />
</calls>
"""

SMS_XML = """<?xml version='1.0' encoding='UTF-8' standalone='yes' ?>
<smses count="3">
  <sms protocol="0" address="+16125550001" date="1704067200000"
       type="1" subject="null" body="See you at noon." read="1"
       readable_date="Jan 1, 2024 12:00:00 AM" contact_name="Test Contact" />
  <sms protocol="0" address="+16125550002" date="1704067260000"
       type="2" subject="null" body="Running late." read="1"
       readable_date="Jan 1, 2024 12:01:00 AM" contact_name="Other Contact" />
  <mms date="1704067440000" address="+16125550001" msg_box="1" read="1"
       contact_name="Test Contact" m_type="132">
    <parts>
      <part seq="0" ct="text/plain" text="Photos from the weekend." />
    </parts>
    <addrs>
      <addr address="+16125550001" type="137" charset="106" />
      <addr address="+16125550003" type="151" charset="106" />
    </addrs>
  </mms>
</smses>
"""

_ENV = (
    'SBR_COLLECTION_BASE_DIRECTORY',
    'SBR_COLLECTION_COLLECTION_FILE',
    'SBR_COLLECTION_GROUP_PERIOD',
    'SBR_COLLECTION_BACKUP',
    'SBR_COLLECTION_USE_CONFIG',
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def exports(tmp_path):
    """Write one calls and one sms export; return their paths."""
    src = tmp_path / 'exports'
    src.mkdir()
    calls = src / 'calls-2024-05-16.xml'
    sms   = src / 'sms-2024-05-16.xml'
    calls.write_text(CALLS_XML, encoding='utf-8')
    sms.write_text(SMS_XML, encoding='utf-8')
    return calls, sms
