import pytest
from google.api_core import exceptions as google_exceptions

from greensprint.services.species_service import SpeciesService
from greensprint.utils.error_handler import DatabaseError, NotFoundError
from tests.fakes import InMemoryRecordStore, make_doc

@pytest.fixture
def species_docs():
    return [
        make_doc('banyan', {'common_name': 'Banyan', 'scientific_name': 'Ficus benghalensis'}),
        make_doc('neem', {'common_name': 'Neem', 'scientific_name': 'Azadirachta indica'}),
        make_doc('peepal', {'common_name': 'Peepal', 'scientific_name': 'Ficus religiosa'}),
    ]

class TestSpeciesService:

    def test_get_all(self, mock_firestore, species_docs):
        mock_firestore.collection().order_by().stream.return_value = species_docs
        service = SpeciesService(mock_firestore, store=InMemoryRecordStore())

        species = service.get_all()

        assert [s['id'] for s in species] == ['banyan', 'neem', 'peepal']
        mock_firestore.collection().order_by.assert_called_with('common_name')

    def test_get_all_store_failure(self, mock_firestore):
        mock_firestore.collection().order_by().stream.side_effect = google_exceptions.ServiceUnavailable('down')
        service = SpeciesService(mock_firestore, store=InMemoryRecordStore())

        with pytest.raises(DatabaseError):
            service.get_all()

    def test_get_by_id(self, mock_firestore):
        store = InMemoryRecordStore([{'id': 'neem', 'common_name': 'Neem'}])
        service = SpeciesService(mock_firestore, store=store)

        assert service.get_by_id('neem')['common_name'] == 'Neem'
        with pytest.raises(NotFoundError):
            service.get_by_id('oak')

    @pytest.mark.parametrize('query,expected', [
        ('ficus', ['banyan', 'peepal']),
        ('NEEM', ['neem']),
        ('  pal ', ['peepal']),
        ('baobab', []),
    ])
    def test_search_matches_either_name(self, mock_firestore, species_docs, query, expected):
        mock_firestore.collection().order_by().stream.return_value = species_docs
        service = SpeciesService(mock_firestore, store=InMemoryRecordStore())

        assert [s['id'] for s in service.search(query)] == expected

    def test_search_blank_query_skips_the_store(self, mock_firestore):
        service = SpeciesService(mock_firestore, store=InMemoryRecordStore())

        assert service.search('   ') == []
        mock_firestore.collection().order_by.assert_not_called()

    def test_search_respects_limit(self, mock_firestore, species_docs):
        mock_firestore.collection().order_by().stream.return_value = species_docs
        service = SpeciesService(mock_firestore, store=InMemoryRecordStore())

        assert len(service.search('a', limit=2)) == 2
