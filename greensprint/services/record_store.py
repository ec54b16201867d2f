"""
Record Store for Green Sprint
Firestore-backed lookups used by QR resolution and proximity search
"""

from datetime import datetime
import logging
import re

import pytz
from google.api_core import exceptions as google_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from greensprint.utils.error_handler import DatabaseError

logger = logging.getLogger(__name__)

MAX_DOCUMENT_ID_BYTES = 1500
RESERVED_DOCUMENT_ID = re.compile(r'^__.*__$')

def is_valid_document_id(value):
    """
    Firestore rejects ids with slashes, '.' and '..', __reserved__ names and ids over 1500 bytes
    """
    if not value or '/' in value or value in ('.', '..'):
        return False
    if RESERVED_DOCUMENT_ID.match(value):
        return False
    return len(value.encode('utf-8')) <= MAX_DOCUMENT_ID_BYTES

class FirestoreRecordStore:
    def __init__(self, db, collection_name, id_field='id', scans_collection='qr_scans'):
        self.db = db
        self.collection_name = collection_name
        self.id_field = id_field
        self.collection_ref = db.collection(collection_name)
        self.scans_ref = db.collection(scans_collection)

    def _to_record(self, doc):
        record = doc.to_dict() or {}
        record[self.id_field] = doc.id
        return record

    def find(self, field, value):
        """
        Return the first record whose field equals value, or None
        """
        if value is None or value == '':
            return None

        try:
            if field == self.id_field:
                if not is_valid_document_id(str(value)):
                    return None
                doc = self.collection_ref.document(str(value)).get()
                return self._to_record(doc) if doc.exists else None

            query = self.collection_ref.where(filter=FieldFilter(field, '==', value)).limit(1)
            for doc in query.stream():
                return self._to_record(doc)
            return None

        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Error finding {self.collection_name} by {field}: {str(e)}")
            raise DatabaseError(f"Failed to look up {self.collection_name}: {str(e)}") from e

    def query(self, bbox, status='active', status_field='status',
              lat_field='latitude', lng_field='longitude'):
        """
        Records inside a bounding box with the given status
        """
        try:
            query = (
                self.collection_ref
                .where(filter=FieldFilter(lat_field, '>=', bbox.lat_min))
                .where(filter=FieldFilter(lat_field, '<=', bbox.lat_max))
                .where(filter=FieldFilter(lng_field, '>=', bbox.lng_min))
                .where(filter=FieldFilter(lng_field, '<=', bbox.lng_max))
            )
            if status is not None:
                query = query.where(filter=FieldFilter(status_field, '==', status))

            return [self._to_record(doc) for doc in query.stream()]

        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Error querying {self.collection_name} in {bbox}: {str(e)}")
            raise DatabaseError(f"Failed to query {self.collection_name}: {str(e)}") from e

    def record_event(self, subject_id, actor_id, location=None):
        """
        Log a scan of subject_id by actor_id and bump the tree's scan counters
        """
        scanned_at = datetime.now(pytz.utc)
        try:
            self.scans_ref.add({
                'qr_code_id': subject_id,
                'user_id': actor_id,
                'location': location,
                'scanned_at': scanned_at
            })

            query = self.collection_ref.where(filter=FieldFilter('qr_code_id', '==', subject_id)).limit(1)
            for doc in query.stream():
                doc.reference.update({
                    'scan_count': firestore.Increment(1),
                    'last_scanned_at': scanned_at,
                    'updated_at': scanned_at
                })

            logger.info(f"Recorded scan of {subject_id} by user {actor_id}")
            return True

        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Error recording scan of {subject_id}: {str(e)}")
            raise DatabaseError(f"Failed to record scan: {str(e)}") from e

def count_documents(query):
    """
    Number of documents a query or collection matches, counted by Firestore
    """
    results = query.count(alias='total').get()
    if not results:
        return 0
    return int(results[0][0].value)
