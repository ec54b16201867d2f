"""
Leaderboard Service for Green Sprint
Ranks planters by total points
"""

from datetime import datetime
import logging

import pytz
from google.api_core import exceptions as google_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from greensprint.services.record_store import count_documents
from greensprint.utils.error_handler import DatabaseError

logger = logging.getLogger(__name__)

class LeaderboardService:
    def __init__(self, db):
        self.db = db
        self.users_ref = db.collection('user_profiles')

    def get_leaderboard(self, limit=10, current_user_id=None):
        """
        Top planters by points, plus the caller's own rank
        """
        if limit < 1 or limit > 100:
            raise ValueError("Limit must be between 1 and 100")

        try:
            users_query = self.users_ref.order_by('total_points', direction=firestore.Query.DESCENDING).limit(limit)

            entries = []
            current_user = None
            for rank, user_doc in enumerate(users_query.stream(), 1):
                entry = self._build_entry(rank, user_doc.id, user_doc.to_dict())
                entries.append(entry)
                if user_doc.id == current_user_id:
                    current_user = entry

            # If current user not in top results, find their rank
            if current_user_id and current_user is None:
                current_user = self._find_user_rank(current_user_id)

        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Error getting leaderboard: {str(e)}")
            raise DatabaseError(f"Failed to get leaderboard: {str(e)}") from e

        return {
            'entries': entries,
            'current_user': current_user,
            'total_entries': len(entries),
            'updated_at': datetime.now(pytz.utc)
        }

    def _build_entry(self, rank, user_id, user_data):
        return {
            'rank': rank,
            'user_id': user_id,
            'name': user_data.get('full_name') or user_data.get('username') or 'Planter',
            'avatar_url': user_data.get('avatar_url', ''),
            'total_points': user_data.get('total_points', 0),
            'trees_planted': user_data.get('trees_planted', 0)
        }

    def _find_user_rank(self, user_id):
        """
        Rank of a user outside the top entries: one more than the number ahead of them
        """
        user_doc = self.users_ref.document(user_id).get()
        if not user_doc.exists:
            return None

        user_data = user_doc.to_dict()
        points = user_data.get('total_points', 0)
        ahead = count_documents(self.users_ref.where(filter=FieldFilter('total_points', '>', points)))
        return self._build_entry(ahead + 1, user_id, user_data)
