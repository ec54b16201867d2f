"""
Analytics Service for Green Sprint
Platform totals, environmental impact and planting trends
"""

from collections import OrderedDict
from datetime import datetime
import logging

import pytz
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta
from google.api_core import exceptions as google_exceptions
from google.cloud.firestore_v1.base_query import FieldFilter

from greensprint import config
from greensprint.services.record_store import count_documents
from greensprint.utils.error_handler import DatabaseError

logger = logging.getLogger(__name__)

class AnalyticsService:
    def __init__(self, db):
        self.db = db
        self.trees_ref = db.collection('trees')
        self.users_ref = db.collection('user_profiles')
        self.campaigns_ref = db.collection('campaigns')

    def calculate_impact(self, tree_count):
        """
        Yearly environmental impact of tree_count trees
        """
        return {
            'co2_kg': tree_count * config.IMPACT['CO2_KG_PER_TREE'],
            'water_liters': tree_count * config.IMPACT['WATER_LITERS_PER_TREE'],
            'oxygen_kg': tree_count * config.IMPACT['OXYGEN_KG_PER_TREE'],
            'air_pollutants_g': tree_count * config.IMPACT['AIR_POLLUTANTS_G_PER_TREE']
        }

    def get_global_stats(self):
        try:
            total_trees = count_documents(self.trees_ref)
            total_users = count_documents(self.users_ref)
            total_campaigns = count_documents(self.campaigns_ref)
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Error getting global stats: {str(e)}")
            raise DatabaseError(f"Failed to get global stats: {str(e)}") from e

        return {
            'total_trees': total_trees,
            'total_users': total_users,
            'total_campaigns': total_campaigns,
            'impact': self.calculate_impact(total_trees)
        }

    def get_trees_by_month(self, user_id=None, months=12, now=None):
        """
        Trees planted per calendar month over the last `months` months, oldest first.

        Months without plantings are included with a zero count.
        """
        if months < 1:
            raise ValueError("Months must be at least 1")

        now = now or datetime.now(pytz.utc)
        start = (now - relativedelta(months=months - 1)).replace(day=1, hour=0, minute=0, second=0, microsecond=0)

        monthly = OrderedDict()
        cursor = start
        while cursor <= now:
            monthly[cursor.strftime('%Y-%m')] = 0
            cursor += relativedelta(months=1)

        try:
            query = self.trees_ref.where(filter=FieldFilter('created_at', '>=', start))
            if user_id:
                query = query.where(filter=FieldFilter('planter_id', '==', user_id))
            docs = list(query.stream())
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Error getting monthly tree counts: {str(e)}")
            raise DatabaseError(f"Failed to get monthly tree counts: {str(e)}") from e

        for doc in docs:
            created_at = doc.to_dict().get('created_at')
            if isinstance(created_at, str):
                try:
                    created_at = date_parser.isoparse(created_at)
                except ValueError:
                    logger.warning(f"Skipping tree {doc.id} with unparseable created_at {created_at!r}")
                    continue
            if not isinstance(created_at, datetime):
                continue
            key = created_at.strftime('%Y-%m')
            if key in monthly:
                monthly[key] += 1

        return dict(monthly)
