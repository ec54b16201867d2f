import pytest
from unittest.mock import Mock, patch

from tests.fakes import InMemoryRecordStore

@pytest.fixture
def mock_firestore():
    """Mock Firestore database"""
    with patch('firebase_admin.firestore.client') as mock_client:
        mock_db = Mock()
        mock_client.return_value = mock_db
        yield mock_db

@pytest.fixture
def sample_tree():
    """Sample tree document for testing"""
    return {
        'id': '0f8fad5b-d9cb-469f-a165-70867728950e',
        'qr_code_id': 'GS-1718000000000-AB12CD34',
        'species_id': 'neem',
        'planter_id': 'planter-1',
        'latitude': 12.9716,
        'longitude': 77.5946,
        'health_status': 'healthy'
    }

@pytest.fixture
def tree_store(sample_tree):
    return InMemoryRecordStore([sample_tree])

@pytest.fixture
def sample_campaigns():
    """Campaigns around Bengaluru plus a few that should never match"""
    return [
        {'id': 'cubbon', 'name': 'Cubbon Park Drive', 'status': 'active', 'latitude': 12.9763, 'longitude': 77.5929},
        {'id': 'mysuru', 'name': 'Mysuru Ring Road', 'status': 'active', 'latitude': 12.2958, 'longitude': 76.6394},
        {'id': 'draft', 'name': 'Lalbagh Draft', 'status': 'draft', 'latitude': 12.9507, 'longitude': 77.5848},
        {'id': 'chennai', 'name': 'Marina Green', 'status': 'active', 'latitude': 13.0500, 'longitude': 80.2824},
        {'id': 'nowhere', 'name': 'Unplaced', 'status': 'active', 'latitude': None, 'longitude': None},
    ]
