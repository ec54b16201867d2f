import json

import pytest
from unittest.mock import Mock

from greensprint.services.qr_resolver import (
    IdentifierKind,
    LookupCandidate,
    classify,
    find_record,
    resolve,
)

TREE_UUID = '0f8fad5b-d9cb-469f-a165-70867728950e'

def pairs(candidates):
    return [(c.field, c.value) for c in candidates]

class TestClassify:

    def test_structured_payload_with_id(self):
        """JSON payload uses its id as the primary identifier"""
        raw = json.dumps({'id': 'tree-42', 'qr_code_id': 'GS-1-ABC', 'tree_id': 'tree-42'})

        parsed = classify(raw)

        assert parsed.kind is IdentifierKind.STRUCTURED_PAYLOAD
        assert parsed.valid is True
        assert parsed.primary_id == 'tree-42'
        assert parsed.auxiliary['qr_code_id'] == 'GS-1-ABC'
        assert parsed.code_id == 'GS-1-ABC'
        assert parsed.record_id == 'tree-42'

    def test_structured_payload_falls_back_to_qr_code_id(self):
        parsed = classify('{"qr_code_id": "GS-1-ABC"}')

        assert parsed.kind is IdentifierKind.STRUCTURED_PAYLOAD
        assert parsed.primary_id == 'GS-1-ABC'

    def test_structured_payload_without_identifiers_is_unrecognized(self):
        parsed = classify('{"species": "neem"}')

        assert parsed.kind is IdentifierKind.UNRECOGNIZED
        assert parsed.valid is False
        assert parsed.primary_id is None

    def test_malformed_json_falls_through(self):
        parsed = classify('{not json')

        assert parsed.kind is IdentifierKind.UNRECOGNIZED

    def test_deeply_nested_json_is_unrecognized(self):
        parsed = classify('{"id": ' + '[' * 100000)

        assert parsed.kind is IdentifierKind.UNRECOGNIZED
        assert parsed.error

    @pytest.mark.parametrize('raw', ['GS-1718000000000-AB12CD34', 'GS-1-X', 'GS-99-abc123'])
    def test_native_code(self, raw):
        parsed = classify(raw)

        assert parsed.kind is IdentifierKind.NATIVE_CODE
        assert parsed.primary_id == raw
        assert parsed.auxiliary == {}

    def test_scanner_line_terminator_is_stripped(self):
        parsed = classify('GS-1718000000000-AB12CD34\r\n')

        assert parsed.primary_id == 'GS-1718000000000-AB12CD34'

    @pytest.mark.parametrize('raw', [TREE_UUID, TREE_UUID.upper()])
    def test_raw_uuid(self, raw):
        parsed = classify(raw)

        assert parsed.kind is IdentifierKind.RAW_UUID
        assert parsed.primary_id == raw
        assert parsed.record_id == raw

    def test_locator_url_with_both_ids(self):
        parsed = classify('https://app.example/tree-details.html?id=X&qr=Y')

        assert parsed.kind is IdentifierKind.LOCATOR_URL
        assert parsed.primary_id == 'Y'
        assert parsed.auxiliary == {'tree_id': 'X', 'qr_code_id': 'Y'}

    def test_locator_url_with_only_tree_id(self):
        parsed = classify('https://app.example/tree-details.html?id=X')

        assert parsed.primary_id == 'X'
        assert parsed.auxiliary == {'tree_id': 'X'}

    def test_locator_url_uses_last_path_segment(self):
        parsed = classify('https://app.example/trees/abc123')

        assert parsed.kind is IdentifierKind.LOCATOR_URL
        assert parsed.primary_id == 'abc123'
        assert parsed.auxiliary == {}

    def test_blank_query_values_count_as_absent(self):
        parsed = classify('https://app.example/tree-details.html?id=X&qr=')

        assert parsed.primary_id == 'X'
        assert 'qr_code_id' not in parsed.auxiliary

    def test_relative_url_is_not_a_locator(self):
        parsed = classify('tree-details.html?id=X')

        assert parsed.kind is IdentifierKind.UNRECOGNIZED

    @pytest.mark.parametrize('raw', ['not-a-real-code', '', '   ', '12345', 'https://'])
    def test_unrecognized(self, raw):
        parsed = classify(raw)

        assert parsed.kind is IdentifierKind.UNRECOGNIZED
        assert parsed.valid is False
        assert parsed.error

    def test_non_string_input_is_unrecognized(self):
        assert classify(None).valid is False

    def test_custom_native_prefix(self):
        parsed = classify('TAG-001', native_prefix='TAG-')

        assert parsed.kind is IdentifierKind.NATIVE_CODE

class TestResolve:

    def test_locator_url_prefers_native_code_then_tree_id(self):
        parsed = classify('https://app.example/tree-details.html?id=abc123&qr=GS-999')

        candidates = pairs(resolve(parsed))

        assert candidates[:2] == [('qr_code_id', 'GS-999'), ('id', 'abc123')]
        assert candidates == [('qr_code_id', 'GS-999'), ('id', 'abc123'), ('id', 'GS-999')]

    def test_native_code(self):
        candidates = pairs(resolve(classify('GS-1-ABC')))

        assert candidates == [('qr_code_id', 'GS-1-ABC'), ('id', 'GS-1-ABC')]

    def test_raw_uuid(self):
        candidates = pairs(resolve(classify(TREE_UUID)))

        assert candidates == [('id', TREE_UUID), ('qr_code_id', TREE_UUID)]

    def test_structured_payload_ids_come_first(self):
        raw = json.dumps({'id': 'p-1', 'tree_id': 't-1', 'qr_code_id': 'c-1'})

        candidates = pairs(resolve(classify(raw)))

        assert candidates == [
            ('id', 't-1'),
            ('qr_code_id', 'c-1'),
            ('qr_code_id', 'p-1'),
            ('id', 'p-1'),
        ]

    def test_custom_field_names(self):
        candidates = pairs(resolve(classify('GS-1-ABC'), record_field='doc_id', code_field='code'))

        assert candidates == [('code', 'GS-1-ABC'), ('doc_id', 'GS-1-ABC')]

    def test_unrecognized_has_no_candidates(self):
        assert resolve(classify('not-a-real-code')) == []

    @pytest.mark.parametrize('raw', [
        'GS-1-ABC',
        TREE_UUID,
        'https://app.example/tree-details.html?id=X&qr=Y',
        'https://app.example/tree-details.html?id=X',
        'https://app.example/tree-details.html?qr=GS-5-Q',
        'https://app.example/trees/abc',
        '{"id": "GS-7-Z", "qr_code_id": "GS-7-Z"}',
        '{"qr_code_id": "c-1", "tree_id": "c-1"}',
    ])
    def test_no_repeats_and_fallbacks_always_present(self, raw):
        parsed = classify(raw)
        candidates = pairs(resolve(parsed))

        for previous, current in zip(candidates, candidates[1:]):
            assert previous != current
        assert len(candidates) == len(set(candidates))
        assert ('qr_code_id', parsed.primary_id) in candidates
        assert ('id', parsed.primary_id) in candidates

class TestFindRecord:

    def test_stops_at_first_hit(self):
        store = Mock()
        store.find.side_effect = [None, {'id': 't-1'}, {'id': 'never'}]
        candidates = [
            LookupCandidate('qr_code_id', 'a'),
            LookupCandidate('id', 'b'),
            LookupCandidate('id', 'c'),
        ]

        match = find_record(store, candidates)

        assert match.record == {'id': 't-1'}
        assert match.candidate == LookupCandidate('id', 'b')
        assert match.attempts == 2
        assert store.find.call_count == 2

    def test_returns_none_when_all_miss(self):
        store = Mock()
        store.find.return_value = None

        assert find_record(store, [LookupCandidate('id', 'a'), LookupCandidate('id', 'b')]) is None
        assert store.find.call_count == 2

    def test_store_errors_propagate(self):
        store = Mock()
        store.find.side_effect = RuntimeError('boom')

        with pytest.raises(RuntimeError):
            find_record(store, [LookupCandidate('id', 'a')])
