"""
Configuration for the Green Sprint backend
Environment settings plus gamification and impact constants
"""

import os

from dotenv import load_dotenv

load_dotenv()

ENVIRONMENT = os.environ.get('ENVIRONMENT', 'production')
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
APP_NAME = 'Green Sprint'
APP_VERSION = '1.0.0'

# Base URL used when printing locator URLs onto tree QR codes
APP_BASE_URL = os.environ.get('APP_BASE_URL', 'https://greensprint.app').rstrip('/')

# Namespace of the codes printed on physical tree tags
QR_CODE_PREFIX = os.environ.get('QR_CODE_PREFIX', 'GS-')

DEFAULT_NEARBY_RADIUS_KM = float(os.environ.get('DEFAULT_NEARBY_RADIUS_KM', 200))

POINTS = {
    'TREE_PLANTED': 100,
    'CAMPAIGN_CREATED': 200,
    'CAMPAIGN_JOINED': 25,
}

BADGE_THRESHOLDS = [
    {'count': 1, 'id': 'first_tree', 'name': 'First Tree', 'icon': '🌱'},
    {'count': 5, 'id': 'five_trees', 'name': 'Grove Starter', 'icon': '🌳'},
    {'count': 10, 'id': 'ten_trees', 'name': 'Forest Friend', 'icon': '🌲'},
    {'count': 25, 'id': 'twentyfive_trees', 'name': 'Tree Champion', 'icon': '🏆'},
    {'count': 50, 'id': 'fifty_trees', 'name': 'Eco Warrior', 'icon': '🦸'},
    {'count': 100, 'id': 'hundred_trees', 'name': 'Forest Guardian', 'icon': '👑'},
]

# Per tree, per year
IMPACT = {
    'CO2_KG_PER_TREE': 22,
    'WATER_LITERS_PER_TREE': 400,
    'OXYGEN_KG_PER_TREE': 118,
    'AIR_POLLUTANTS_G_PER_TREE': 7,
}

CAMPAIGN_STATUS = {
    'DRAFT': 'draft',
    'ACTIVE': 'active',
    'COMPLETED': 'completed',
    'CANCELLED': 'cancelled',
}

TREE_HEALTH = {
    'HEALTHY': 'healthy',
    'NEEDS_CARE': 'needs_care',
    'AT_RISK': 'at_risk',
    'DECEASED': 'deceased',
}
