"""
Tree Service for Green Sprint
Handles tree registration, QR codes, listings and health updates
"""

from datetime import datetime
from urllib.parse import urlencode
import logging
import time
import uuid

import pytz
from google.api_core import exceptions as google_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from greensprint import config
from greensprint.services.geo import point_from_record
from greensprint.services.record_store import FirestoreRecordStore
from greensprint.utils.error_handler import DatabaseError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

class TreeService:
    def __init__(self, db, store=None, species=None):
        self.db = db
        self.trees_ref = db.collection('trees')
        self.updates_ref = db.collection('tree_updates')
        self.store = store or FirestoreRecordStore(db, 'trees')
        self.species = species

    @staticmethod
    def generate_qr_code_id():
        """
        New native code: GS-<epoch millis>-<8 random alphanumerics>
        """
        millis = int(time.time() * 1000)
        return f"{config.QR_CODE_PREFIX}{millis}-{uuid.uuid4().hex[:8]}".upper()

    @staticmethod
    def get_qr_url(tree_id, qr_code_id, base_url=None):
        """
        Locator URL printed on the tag so generic scanner apps can open the tree
        """
        base = (base_url or config.APP_BASE_URL).rstrip('/')
        return f"{base}/tree-details.html?{urlencode({'id': tree_id, 'qr': qr_code_id})}"

    def register_tree(self, planter_id, data):
        """
        Create a tree record with a freshly generated QR code id
        """
        if not data.get('species_id'):
            raise ValidationError("species_id is required", field='species_id')
        if self.species is not None:
            try:
                self.species.get_by_id(data['species_id'])
            except NotFoundError as e:
                raise ValidationError("Unknown species", field='species_id') from e

        location = point_from_record(data)
        if location is not None and (not -90 <= location.lat <= 90 or not -180 <= location.lng <= 180):
            raise ValidationError("Coordinates out of range")

        now = datetime.now(pytz.utc)
        qr_code_id = self.generate_qr_code_id()

        tree_data = {
            'campaign_id': data.get('campaign_id') or None,
            'species_id': data['species_id'],
            'planter_id': planter_id,
            'qr_code_id': qr_code_id,
            'latitude': location.lat if location else None,
            'longitude': location.lng if location else None,
            'planting_date': data.get('planting_date') or now.date().isoformat(),
            'photo_url': None,
            'health_status': config.TREE_HEALTH['HEALTHY'],
            'survival_status': True,
            'notes': data.get('notes') or '',
            'scan_count': 0,
            'created_at': now,
            'updated_at': now
        }

        try:
            _, tree_ref = self.trees_ref.add(tree_data)
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Error creating tree for {planter_id}: {str(e)}")
            raise DatabaseError(f"Failed to create tree record: {str(e)}") from e

        tree_id = tree_ref.id
        logger.info(f"Registered tree {tree_id} with QR {qr_code_id} for user {planter_id}")

        return {
            'tree': {**tree_data, 'id': tree_id},
            'qr_code': {
                'id': qr_code_id,
                'tree_id': tree_id,
                'campaign_id': tree_data['campaign_id'],
                'url': self.get_qr_url(tree_id, qr_code_id)
            }
        }

    def get_by_id(self, tree_id):
        tree = self.store.find('id', tree_id)
        if tree is None:
            raise NotFoundError("Tree not found")
        return tree

    def get_by_qr_code(self, qr_code_id):
        tree = self.store.find('qr_code_id', qr_code_id)
        if tree is None:
            raise NotFoundError("Tree not found")
        return tree

    def validate_qr_code(self, qr_code_id):
        """
        A QR code is valid when a tree carries it
        """
        tree = self.store.find('qr_code_id', qr_code_id)
        if tree is None:
            return None
        return {
            'id': qr_code_id,
            'tree_id': tree['id'],
            'status': 'active',
            'is_valid': True
        }

    def _list(self, field, value, limit):
        try:
            query = (
                self.trees_ref
                .where(filter=FieldFilter(field, '==', value))
                .order_by('created_at', direction=firestore.Query.DESCENDING)
                .limit(limit)
            )
            trees = []
            for doc in query.stream():
                tree = doc.to_dict()
                tree['id'] = doc.id
                trees.append(tree)
            return trees

        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Error listing trees by {field}={value}: {str(e)}")
            raise DatabaseError(f"Failed to get trees: {str(e)}") from e

    def get_by_user(self, user_id, limit=50):
        """
        Trees planted by user_id, newest first
        """
        return self._list('planter_id', user_id, limit)

    def get_by_campaign(self, campaign_id, limit=50):
        """
        Trees planted under a campaign, newest first
        """
        return self._list('campaign_id', campaign_id, limit)

    def add_update(self, tree_id, author_id, data):
        """
        Log a health check on a tree and carry its status onto the tree
        """
        health_status = data.get('health_status')
        notes = (data.get('notes') or '').strip()
        if not health_status and not notes:
            raise ValidationError("An update needs a health_status or notes")
        if health_status and health_status not in config.TREE_HEALTH.values():
            raise ValidationError(f"Unknown health status '{health_status}'", field='health_status')

        tree = self.get_by_id(tree_id)
        now = datetime.now(pytz.utc)
        update = {
            'tree_id': tree_id,
            'author_id': author_id,
            'health_status': health_status or tree.get('health_status'),
            'notes': notes,
            'created_at': now
        }

        try:
            _, update_ref = self.updates_ref.add(update)
            if health_status:
                self.trees_ref.document(tree_id).update({
                    'health_status': health_status,
                    'survival_status': health_status != config.TREE_HEALTH['DECEASED'],
                    'updated_at': now
                })
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Error adding update to tree {tree_id}: {str(e)}")
            raise DatabaseError(f"Failed to add tree update: {str(e)}") from e

        logger.info(f"User {author_id} updated tree {tree_id}: {update['health_status']}")
        return {**update, 'id': update_ref.id}

    def get_updates(self, tree_id, limit=50):
        try:
            query = (
                self.updates_ref
                .where(filter=FieldFilter('tree_id', '==', tree_id))
                .order_by('created_at', direction=firestore.Query.DESCENDING)
                .limit(limit)
            )
            updates = []
            for doc in query.stream():
                update = doc.to_dict()
                update['id'] = doc.id
                updates.append(update)
            return updates

        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Error getting updates for tree {tree_id}: {str(e)}")
            raise DatabaseError(f"Failed to get tree updates: {str(e)}") from e
