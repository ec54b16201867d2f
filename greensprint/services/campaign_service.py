"""
Campaign Service for Green Sprint
Handles campaign creation, participation, lookups and proximity search
"""

from datetime import datetime
import logging

import pytz
from google.api_core import exceptions as google_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from greensprint import config
from greensprint.services.geo import GeoPoint, bounding_box, filter_by_distance, point_from_record
from greensprint.services.record_store import FirestoreRecordStore
from greensprint.utils.error_handler import DatabaseError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

class CampaignService:
    def __init__(self, db, store=None):
        self.db = db
        self.campaigns_ref = db.collection('campaigns')
        self.participants_ref = db.collection('campaign_participants')
        self.store = store or FirestoreRecordStore(db, 'campaigns')

    def get_nearby(self, lat, lng, radius_km=None):
        """
        Active campaigns within radius_km of (lat, lng), nearest first.

        The store narrows candidates to the bounding box; the exact circle is
        applied here.
        """
        if radius_km is None:
            radius_km = config.DEFAULT_NEARBY_RADIUS_KM
        if not -90 <= lat <= 90 or not -180 <= lng <= 180:
            raise ValidationError("Coordinates out of range")
        if radius_km <= 0:
            raise ValidationError("Radius must be positive", field='radius_km')

        center = GeoPoint(lat, lng)
        bbox = bounding_box(center, radius_km)
        candidates = self.store.query(bbox, status=config.CAMPAIGN_STATUS['ACTIVE'])
        nearby = filter_by_distance(center, radius_km, candidates)

        logger.info(
            f"Nearby campaigns for ({lat}, {lng}) r={radius_km}km: "
            f"{len(candidates)} in box, {len(nearby)} in range"
        )
        return nearby

    def get_by_id(self, campaign_id):
        """
        Get a single campaign
        """
        campaign = self.store.find('id', campaign_id)
        if campaign is None:
            raise NotFoundError("Campaign not found")
        return campaign

    def get_active(self, limit=12):
        """
        Most recently created active campaigns
        """
        try:
            query = (
                self.campaigns_ref
                .where(filter=FieldFilter('status', '==', config.CAMPAIGN_STATUS['ACTIVE']))
                .order_by('created_at', direction=firestore.Query.DESCENDING)
                .limit(limit)
            )
            campaigns = []
            for doc in query.stream():
                campaign = doc.to_dict()
                campaign['id'] = doc.id
                campaigns.append(campaign)
            return campaigns

        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Error getting active campaigns: {str(e)}")
            raise DatabaseError(f"Failed to get campaigns: {str(e)}") from e

    def create(self, creator_id, data):
        """
        Create a campaign owned by creator_id
        """
        name = (data.get('name') or '').strip()
        if not name:
            raise ValidationError("Campaign name is required", field='name')

        status = data.get('status') or config.CAMPAIGN_STATUS['ACTIVE']
        if status not in config.CAMPAIGN_STATUS.values():
            raise ValidationError(f"Unknown campaign status '{status}'", field='status')

        target_trees = data.get('target_trees', 100)
        if isinstance(target_trees, bool) or not isinstance(target_trees, int) or target_trees < 1:
            raise ValidationError("target_trees must be a positive integer", field='target_trees')

        location = point_from_record(data)
        if location is not None and (not -90 <= location.lat <= 90 or not -180 <= location.lng <= 180):
            raise ValidationError("Coordinates out of range")

        now = datetime.now(pytz.utc)
        campaign_data = {
            'name': name,
            'description': data.get('description') or '',
            'creator_id': creator_id,
            'location_name': data.get('location_name') or '',
            'latitude': location.lat if location else None,
            'longitude': location.lng if location else None,
            'start_date': data.get('start_date') or now.date().isoformat(),
            'end_date': data.get('end_date'),
            'target_trees': target_trees,
            'trees_planted': 0,
            'participants_count': 0,
            'status': status,
            'created_at': now,
            'updated_at': now
        }

        try:
            _, campaign_ref = self.campaigns_ref.add(campaign_data)
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Error creating campaign for {creator_id}: {str(e)}")
            raise DatabaseError(f"Failed to create campaign: {str(e)}") from e

        logger.info(f"Created campaign {campaign_ref.id} by user {creator_id}")
        return {**campaign_data, 'id': campaign_ref.id}

    def _participation_ref(self, campaign_id, user_id):
        # One document per (campaign, user) makes joining idempotent
        return self.participants_ref.document(f"{campaign_id}_{user_id}")

    def join(self, campaign_id, user_id):
        """
        Add user_id to a campaign; returns False if they had already joined
        """
        campaign = self.get_by_id(campaign_id)
        if campaign.get('status') != config.CAMPAIGN_STATUS['ACTIVE']:
            raise ValidationError("Only active campaigns can be joined")

        try:
            self._participation_ref(campaign_id, user_id).create({
                'campaign_id': campaign_id,
                'user_id': user_id,
                'joined_at': datetime.now(pytz.utc)
            })
        except google_exceptions.AlreadyExists:
            return False
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Error joining campaign {campaign_id}: {str(e)}")
            raise DatabaseError(f"Failed to join campaign: {str(e)}") from e

        self._bump(campaign_id, 'participants_count', 1)
        logger.info(f"User {user_id} joined campaign {campaign_id}")
        return True

    def leave(self, campaign_id, user_id):
        """
        Remove user_id from a campaign; returns False if they were not in it
        """
        doc_ref = self._participation_ref(campaign_id, user_id)
        try:
            if not doc_ref.get().exists:
                return False
            doc_ref.delete()
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Error leaving campaign {campaign_id}: {str(e)}")
            raise DatabaseError(f"Failed to leave campaign: {str(e)}") from e

        self._bump(campaign_id, 'participants_count', -1)
        logger.info(f"User {user_id} left campaign {campaign_id}")
        return True

    def record_tree(self, campaign_id):
        """
        Count a tree planted under a campaign
        """
        self._bump(campaign_id, 'trees_planted', 1)

    def _bump(self, campaign_id, field_name, amount):
        try:
            self.campaigns_ref.document(campaign_id).update({
                field_name: firestore.Increment(amount),
                'updated_at': datetime.now(pytz.utc)
            })
        except google_exceptions.NotFound as e:
            raise NotFoundError("Campaign not found") from e
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Error updating {field_name} on campaign {campaign_id}: {str(e)}")
            raise DatabaseError(f"Failed to update campaign: {str(e)}") from e

    def get_participants(self, campaign_id):
        try:
            query = self.participants_ref.where(filter=FieldFilter('campaign_id', '==', campaign_id))
            return [doc.to_dict() for doc in query.stream()]
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Error getting participants of {campaign_id}: {str(e)}")
            raise DatabaseError(f"Failed to get participants: {str(e)}") from e

    def get_user_campaigns(self, user_id):
        """
        Campaigns user_id has joined, each participation with its campaign attached
        """
        try:
            query = self.participants_ref.where(filter=FieldFilter('user_id', '==', user_id))
            participations = [doc.to_dict() for doc in query.stream()]
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Error getting campaigns of user {user_id}: {str(e)}")
            raise DatabaseError(f"Failed to get user campaigns: {str(e)}") from e

        joined = []
        for participation in participations:
            campaign = self.store.find('id', participation.get('campaign_id'))
            # Deleted campaigns leave orphaned participations behind
            if campaign is not None:
                joined.append({**participation, 'campaign': campaign})
        return joined
