"""
Badge Service for Green Sprint
Awards planting achievements when tree-count thresholds are reached
"""

from datetime import datetime
import logging

import pytz
from google.api_core import exceptions as google_exceptions
from google.cloud.firestore_v1.base_query import FieldFilter

from greensprint import config
from greensprint.utils.error_handler import DatabaseError

logger = logging.getLogger(__name__)

class BadgeService:
    def __init__(self, db, thresholds=None):
        self.db = db
        self.achievements_ref = db.collection('achievements')
        self.thresholds = thresholds or config.BADGE_THRESHOLDS

    def get_user_achievements(self, user_id):
        """
        Get every achievement a user has earned
        """
        try:
            query = self.achievements_ref.where(filter=FieldFilter('user_id', '==', user_id))
            achievements = [doc.to_dict() for doc in query.stream()]
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Error getting achievements: {str(e)}")
            raise DatabaseError(f"Failed to get achievements: {str(e)}") from e

        achievements.sort(key=lambda a: a.get('earned_at') or datetime.min.replace(tzinfo=pytz.utc))
        return achievements

    def award(self, user_id, badge):
        """
        Award a badge; returns False if the user already holds it
        """
        # One document per (user, badge) keeps awards idempotent
        doc_ref = self.achievements_ref.document(f"{user_id}_{badge['id']}")
        try:
            doc_ref.create({
                'user_id': user_id,
                'badge_id': badge['id'],
                'badge_name': badge['name'],
                'badge_icon': badge['icon'],
                'earned_at': datetime.now(pytz.utc)
            })
        except google_exceptions.AlreadyExists:
            return False
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Error awarding badge {badge['id']}: {str(e)}")
            raise DatabaseError(f"Failed to award badge: {str(e)}") from e

        logger.info(f"Awarded badge {badge['id']} to user {user_id}")
        return True

    def check_and_award(self, user_id, trees_planted):
        """
        Award every threshold badge reached by trees_planted, return the new ones
        """
        newly_earned = []
        for badge in self.thresholds:
            if trees_planted >= badge['count'] and self.award(user_id, badge):
                newly_earned.append(badge)
        return newly_earned
