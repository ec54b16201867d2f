"""
Species Service for Green Sprint
Catalogue of tree species offered when registering a tree
"""

import logging

from google.api_core import exceptions as google_exceptions

from greensprint.services.record_store import FirestoreRecordStore
from greensprint.utils.error_handler import DatabaseError, NotFoundError

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 20

class SpeciesService:
    def __init__(self, db, store=None):
        self.db = db
        self.species_ref = db.collection('tree_species')
        self.store = store or FirestoreRecordStore(db, 'tree_species')

    def get_all(self):
        """
        Every species, ordered by common name
        """
        try:
            species = []
            for doc in self.species_ref.order_by('common_name').stream():
                item = doc.to_dict()
                item['id'] = doc.id
                species.append(item)
            return species
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Error getting species: {str(e)}")
            raise DatabaseError(f"Failed to get species: {str(e)}") from e

    def get_by_id(self, species_id):
        species = self.store.find('id', species_id)
        if species is None:
            raise NotFoundError("Species not found")
        return species

    def search(self, query, limit=SEARCH_LIMIT):
        """
        Case-insensitive substring match on common or scientific name
        """
        needle = (query or '').strip().lower()
        if not needle:
            return []

        matches = [
            s for s in self.get_all()
            if needle in (s.get('common_name') or '').lower()
            or needle in (s.get('scientific_name') or '').lower()
        ]
        return matches[:limit]
