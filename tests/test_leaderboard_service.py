import pytest
from unittest.mock import Mock

from greensprint.services.leaderboard_service import LeaderboardService
from tests.fakes import make_doc

@pytest.fixture
def ranked_users():
    return [
        make_doc('u-1', {'full_name': 'Asha Rao', 'total_points': 900, 'trees_planted': 9}),
        make_doc('u-2', {'username': 'kiran', 'total_points': 500, 'trees_planted': 5}),
        make_doc('u-3', {'total_points': 100, 'trees_planted': 1}),
    ]

class TestLeaderboardService:

    def test_entries_ranked_in_order(self, mock_firestore, ranked_users):
        mock_firestore.collection().order_by().limit().stream.return_value = ranked_users
        service = LeaderboardService(mock_firestore)

        leaderboard = service.get_leaderboard(limit=3)

        assert [e['rank'] for e in leaderboard['entries']] == [1, 2, 3]
        assert [e['name'] for e in leaderboard['entries']] == ['Asha Rao', 'kiran', 'Planter']
        assert leaderboard['total_entries'] == 3
        assert leaderboard['current_user'] is None
        assert leaderboard['updated_at'].tzinfo is not None

    def test_current_user_in_top_entries(self, mock_firestore, ranked_users):
        mock_firestore.collection().order_by().limit().stream.return_value = ranked_users
        service = LeaderboardService(mock_firestore)

        leaderboard = service.get_leaderboard(limit=3, current_user_id='u-2')

        assert leaderboard['current_user']['rank'] == 2

    def test_current_user_outside_top_entries(self, mock_firestore, ranked_users):
        users = mock_firestore.collection()
        users.order_by().limit().stream.return_value = ranked_users[:1]
        users.document().get.return_value = make_doc('u-3', {'total_points': 100, 'trees_planted': 1})
        users.where().count().get.return_value = [[Mock(value=2)]]
        service = LeaderboardService(mock_firestore)

        leaderboard = service.get_leaderboard(limit=1, current_user_id='u-3')

        assert leaderboard['current_user']['rank'] == 3
        assert leaderboard['current_user']['user_id'] == 'u-3'

    @pytest.mark.parametrize('limit', [0, 101])
    def test_invalid_limit(self, mock_firestore, limit):
        service = LeaderboardService(mock_firestore)

        with pytest.raises(ValueError):
            service.get_leaderboard(limit=limit)
