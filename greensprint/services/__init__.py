from .analytics_service import AnalyticsService
from .badge_service import BadgeService
from .campaign_service import CampaignService
from .leaderboard_service import LeaderboardService
from .record_store import FirestoreRecordStore
from .scan_service import ScanOutcome, ScanService
from .species_service import SpeciesService
from .tree_service import TreeService
from .user_service import UserService

__all__ = [
    'AnalyticsService',
    'BadgeService',
    'CampaignService',
    'FirestoreRecordStore',
    'LeaderboardService',
    'ScanOutcome',
    'ScanService',
    'SpeciesService',
    'TreeService',
    'UserService',
]
