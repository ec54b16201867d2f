"""
User Service for Green Sprint
Handles user profiles, points and planting stats
"""

from datetime import datetime
import logging

import pytz
from google.api_core import exceptions as google_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from greensprint import config
from greensprint.utils.error_handler import DatabaseError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

class UserService:
    def __init__(self, db):
        self.db = db
        self.users_ref = db.collection('user_profiles')
        self.points_history_ref = db.collection('points_history')

    def get_profile(self, user_id):
        """
        Get a user profile
        """
        try:
            user_doc = self.users_ref.document(user_id).get()
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Error getting user profile: {str(e)}")
            raise DatabaseError(f"Failed to get user profile: {str(e)}") from e

        if not user_doc.exists:
            raise NotFoundError("User not found")

        profile = user_doc.to_dict()
        profile['id'] = user_doc.id
        return profile

    def add_points(self, user_id, points, reason):
        """
        Add points to a user and log them in the points history
        """
        if not isinstance(points, int) or points <= 0:
            raise ValidationError("Points must be a positive integer", field='points')

        now = datetime.now(pytz.utc)
        try:
            self.users_ref.document(user_id).update({
                'total_points': firestore.Increment(points),
                'updated_at': now
            })
            self.points_history_ref.add({
                'user_id': user_id,
                'points': points,
                'reason': reason,
                'created_at': now
            })
        except google_exceptions.NotFound as e:
            raise NotFoundError("User not found") from e
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Error adding points: {str(e)}")
            raise DatabaseError(f"Failed to add points: {str(e)}") from e

        logger.info(f"Added {points} points to user {user_id}: {reason}")
        return {'user_id': user_id, 'points': points, 'reason': reason}

    def increment_tree_count(self, user_id):
        try:
            self.users_ref.document(user_id).update({
                'trees_planted': firestore.Increment(1),
                'updated_at': datetime.now(pytz.utc)
            })
        except google_exceptions.NotFound as e:
            raise NotFoundError("User not found") from e
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Error incrementing tree count: {str(e)}")
            raise DatabaseError(f"Failed to update tree count: {str(e)}") from e

    def record_tree_planted(self, user_id):
        """
        Credit a planted tree: bump the count, award points, return the fresh profile
        """
        self.increment_tree_count(user_id)
        self.add_points(user_id, config.POINTS['TREE_PLANTED'], 'Planted a tree')
        return self.get_profile(user_id)

    def get_points_history(self, user_id, limit=50):
        try:
            query = (
                self.points_history_ref
                .where(filter=FieldFilter('user_id', '==', user_id))
                .order_by('created_at', direction=firestore.Query.DESCENDING)
                .limit(limit)
            )
            return [doc.to_dict() for doc in query.stream()]
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Error getting points history: {str(e)}")
            raise DatabaseError(f"Failed to get points history: {str(e)}") from e
