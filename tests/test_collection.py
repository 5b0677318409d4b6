"""
tests/test_collection.py
Collection dedup, persistence and backup-on-save.
Synthetic records only, no real messages needed.
"""

import json
import logging
import os
import stat
from unittest.mock import patch

import pytest

from sbrcollect.collection import (
    Collection,
    CollectionLoadError,
    STORE_FILE_MODE,
    backup_file,
    load_collection,
)
from sbrcollect.models.record import Addr, Call, MessageLog, MMS, Part, SMS


def _call(date='1700000000000', number='+16125550001', **kw):
    return Call(number=number, date=date, duration='60', type='1',
                contact_name='Test Contact', **kw)


def _sms(date='1700000000000', address='+16125550001', body='Hello.', read='1', **kw):
    return SMS(protocol='0', address=address, date=date, type='1', body=body,
               read=read, contact_name='Test Contact', **kw)


_PARTS = (
    Part(seq='0', ct='text/plain', text='Picture time.'),
    Part(seq='1', ct='image/jpeg', name='IMG_1.jpg', cl='IMG_1.jpg'),
)


def _mms(date='1700000000000', address='+16125550001', snippet='', parts=_PARTS, **kw):
    return MMS(
        date=date, address=address, msg_box='1', snippet=snippet,
        contact_name='Test Contact', msg_id='42', parts=parts,
        addrs=(Addr(address=address, type='137', charset='106'),),
        **kw,
    )


# ── DEDUP ────────────────────────────────────────────────────

class TestDedup:

    def test_same_batch_twice_is_idempotent(self):
        coll  = Collection()
        calls = [_call(), _call(date='1700000060000')]
        sms   = [_sms(), _sms(body='Other.')]
        mms   = [_mms(), _mms(date='1700000120000')]

        assert coll.add_calls(calls) == 2
        assert coll.add_sms(sms) == 2
        assert coll.add_mms(mms) == 2
        first = (list(coll.calls), list(coll.sms), list(coll.mms))

        assert coll.add_calls(calls) == 0
        assert coll.add_sms(sms) == 0
        assert coll.add_mms(mms) == 0
        assert (coll.calls, coll.sms, coll.mms) == first

    def test_duplicates_inside_one_batch_collapse(self):
        coll = Collection()
        assert coll.add_calls([_call(), _call()]) == 1
        assert len(coll.calls) == 1

    def test_calls_differing_in_any_field_are_both_kept(self):
        coll = Collection()
        coll.add_calls([_call(), _call(post_dial_digits='123')])
        assert len(coll.calls) == 2

    def test_sms_differing_in_any_field_are_both_kept(self):
        coll = Collection()
        coll.add_sms([_sms(), _sms(read='0'), _sms(sub_id='1')])
        assert len(coll.sms) == 3

    def test_mms_with_same_date_and_address_merge(self):
        coll = Collection()
        coll.add_mms([_mms(snippet='first')])
        added = coll.add_mms([_mms(snippet='second', m_size='9000', parts=())])
        assert added == 0
        assert len(coll.mms) == 1
        assert coll.mms[0].snippet == 'first'

    def test_mms_with_different_address_is_kept(self):
        coll = Collection()
        coll.add_mms([_mms(), _mms(address='+16125550002')])
        assert len(coll.mms) == 2

    def test_add_messages_routes_sms_and_mms(self):
        coll = Collection()
        log  = MessageLog(sms=[_sms()], mms=[_mms()])
        assert coll.add_messages(log) == 2
        assert len(coll.sms) == 1
        assert len(coll.mms) == 1

    def test_add_messages_with_empty_log(self):
        coll = Collection()
        assert coll.add_messages(MessageLog()) == 0

    def test_dirty_only_after_real_addition(self):
        coll = Collection(calls=[_call()])
        assert not coll.dirty
        coll.add_calls([_call()])
        assert not coll.dirty
        coll.add_calls([_call(date='1')])
        assert coll.dirty

    def test_verbose_logs_additions(self, caplog):
        caplog.set_level(logging.INFO, logger='sbrcollect.collection')
        Collection(verbose=True).add_calls([_call()])
        assert 'adding call' in caplog.text
        assert 'Test Contact' in caplog.text

    def test_quiet_by_default(self, caplog):
        caplog.set_level(logging.INFO, logger='sbrcollect.collection')
        Collection().add_calls([_call()])
        assert 'adding call' not in caplog.text


# ── PERSISTENCE ──────────────────────────────────────────────

class TestPersistence:

    def test_roundtrip_all_kinds(self, tmp_path):
        path = tmp_path / 'collection.json'
        coll = Collection(key='2023/11')
        coll.add_calls([_call(), _call(date='1700000060000')])
        coll.add_sms([_sms()])
        coll.add_mms([_mms()])
        coll.save(path)

        loaded = load_collection(path)
        assert loaded.key == '2023/11'
        assert loaded.calls == coll.calls
        assert loaded.sms == coll.sms
        assert loaded.mms == coll.mms
        assert loaded.mms[0].parts[1].name == 'IMG_1.jpg'

    def test_roundtrip_empty(self, tmp_path):
        path = tmp_path / 'collection.json'
        Collection().save(path)
        loaded = load_collection(path)
        assert loaded.calls == [] and loaded.sms == [] and loaded.mms == []

    def test_save_clears_dirty(self, tmp_path):
        coll = Collection()
        coll.add_calls([_call()])
        coll.save(tmp_path / 'c.json')
        assert not coll.dirty

    def test_store_uses_backup_attribute_names(self, tmp_path):
        path = tmp_path / 'collection.json'
        coll = Collection()
        coll.add_sms([_sms(sub_id='1')])
        coll.add_mms([_mms()])
        coll.save(path)

        data = json.loads(path.read_text(encoding='utf-8'))
        assert set(data) == {'Key', 'Calls', 'Sms', 'Mms'}
        assert data['Sms'][0]['sub_id'] == '1'
        assert data['Mms'][0]['_id'] == '42'
        assert data['Mms'][0]['parts'][0]['ct'] == 'text/plain'
        assert data['Mms'][0]['addrs'][0]['charset'] == '106'

    def test_load_accepts_uppercase_message_keys(self, tmp_path):
        path = tmp_path / 'v1.json'
        path.write_text(json.dumps({
            'Calls': [{'number': '+1', 'date': '1'}],
            'SMS':   [{'address': '+1', 'date': '2', 'body': 'hi'}],
            'MMS':   [{'address': '+1', 'date': '3', 'parts': None}],
        }), encoding='utf-8')
        coll = load_collection(path)
        assert coll.calls[0].number == '+1'
        assert coll.sms[0].body == 'hi'
        assert coll.mms[0].parts == ()

    def test_load_flags_are_runtime_only(self, tmp_path):
        path = tmp_path / 'c.json'
        Collection(verbose=True, backup=True).save(path)
        assert 'verbose' not in path.read_text(encoding='utf-8')
        coll = load_collection(path, verbose=True, backup=True)
        assert coll.verbose and coll.backup

    def test_malformed_json_raises(self, tmp_path):
        path = tmp_path / 'bad.json'
        path.write_text('{"Calls": [', encoding='utf-8')
        with pytest.raises(CollectionLoadError):
            load_collection(path)

    def test_wrong_shape_raises(self, tmp_path):
        path = tmp_path / 'bad.json'
        path.write_text('[]', encoding='utf-8')
        with pytest.raises(CollectionLoadError):
            load_collection(path)

    def test_non_string_field_raises(self, tmp_path):
        path = tmp_path / 'bad.json'
        path.write_text(json.dumps({'Calls': [{'date': 1700000000000}]}), encoding='utf-8')
        with pytest.raises(CollectionLoadError):
            load_collection(path)

    def test_undecodable_file_raises(self, tmp_path):
        path = tmp_path / 'bad.json'
        path.write_bytes(b'{"Calls": ["\xff\xfe"]}')
        with pytest.raises(CollectionLoadError, match='not UTF-8'):
            load_collection(path)

    @pytest.mark.skipif(os.name == 'nt', reason='POSIX permissions')
    def test_saved_file_is_owner_only(self, tmp_path):
        path = tmp_path / 'c.json'
        Collection().save(path)
        assert stat.S_IMODE(path.stat().st_mode) == STORE_FILE_MODE

    def test_missing_file_raises_oserror(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_collection(tmp_path / 'nope.json')

    def test_save_leaves_no_temp_files(self, tmp_path):
        Collection().save(tmp_path / 'c.json')
        assert [p.name for p in tmp_path.iterdir()] == ['c.json']

    def test_failed_write_keeps_previous_file(self, tmp_path):
        path = tmp_path / 'c.json'
        path.write_text('previous', encoding='utf-8')
        coll = Collection()
        coll.add_calls([_call()])
        with patch('sbrcollect.collection.os.replace', side_effect=OSError('disk full')):
            with pytest.raises(OSError):
                coll.save(path)
        assert path.read_text(encoding='utf-8') == 'previous'
        assert [p.name for p in tmp_path.iterdir()] == ['c.json']
        assert coll.dirty


# ── BACKUP ───────────────────────────────────────────────────

class TestBackup:

    def test_backup_disabled_creates_no_extra_file(self, tmp_path):
        path = tmp_path / 'collection.json'
        coll = Collection()
        coll.add_calls([_call()])
        coll.save(path)
        coll.add_calls([_call(date='1700000060000')])
        coll.save(path)
        assert [p.name for p in tmp_path.iterdir()] == ['collection.json']

    def test_backup_captures_previous_contents(self, tmp_path):
        path = tmp_path / 'collection.json'
        coll = Collection(backup=True)
        coll.add_calls([_call()])
        coll.save(path)
        before = path.read_text(encoding='utf-8')

        coll.add_calls([_call(date='1700000060000')])
        with patch('sbrcollect.collection._now', return_value=1700000999):
            coll.save(path)

        backup = tmp_path / 'collection.1700000999.json'
        assert backup.read_text(encoding='utf-8') == before
        assert len(load_collection(backup).calls) == 1
        assert len(load_collection(path).calls) == 2

    def test_first_save_has_nothing_to_back_up(self, tmp_path):
        coll = Collection(backup=True)
        coll.save(tmp_path / 'collection.json')
        assert [p.name for p in tmp_path.iterdir()] == ['collection.json']

    def test_existing_backup_name_fails_loudly(self, tmp_path):
        path = tmp_path / 'collection.json'
        path.write_text('{}', encoding='utf-8')
        (tmp_path / 'collection.1700000999.json').write_text('taken', encoding='utf-8')
        coll = Collection(backup=True)
        coll.add_calls([_call()])
        with patch('sbrcollect.collection._now', return_value=1700000999):
            with pytest.raises(FileExistsError):
                coll.save(path)
        assert path.read_text(encoding='utf-8') == '{}'
        assert (tmp_path / 'collection.1700000999.json').read_text(encoding='utf-8') == 'taken'

    def test_source_not_regular_file_fails(self, tmp_path):
        target = tmp_path / 'collection.json'
        target.mkdir()
        with pytest.raises(ValueError):
            backup_file(target)

    def test_backup_name_without_suffix(self, tmp_path):
        path = tmp_path / 'store'
        path.write_text('x', encoding='utf-8')
        with patch('sbrcollect.collection._now', return_value=1):
            dest = backup_file(path)
        assert dest == tmp_path / 'store.1'
        assert dest.read_text(encoding='utf-8') == 'x'
