"""
Green Sprint Backend - Tree Planting Community Platform
Firebase Cloud Functions + Firestore Backend

Main entry point for the Flask API wrapped as a Firebase Function
"""

import logging
import os

from flask import Flask, request, jsonify
from flask_cors import CORS
from firebase_functions import https_fn, options
from firebase_admin import initialize_app, get_app, credentials, firestore

from greensprint import config
from greensprint.services.analytics_service import AnalyticsService
from greensprint.services.badge_service import BadgeService
from greensprint.services.campaign_service import CampaignService
from greensprint.services.leaderboard_service import LeaderboardService
from greensprint.services.record_store import FirestoreRecordStore
from greensprint.services.scan_service import ScanService
from greensprint.services.species_service import SpeciesService
from greensprint.services.tree_service import TreeService
from greensprint.services.user_service import UserService
from greensprint.utils.auth_middleware import current_user_id, optional_auth, require_auth
from greensprint.utils.error_handler import (
    GreenSprintError,
    ValidationError,
    format_success_response,
    handle_error,
    validate_request_data,
)

# Configure logging
logging.basicConfig(level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)

SCAN_STATUS_CODES = {
    'MALFORMED_INPUT': 400,
    'NOT_FOUND': 404,
    'STORE_UNAVAILABLE': 503,
}

def init_firestore():
    """
    Initialize the Firebase Admin SDK once and return a Firestore client
    """
    try:
        get_app()
    except ValueError:
        # For local development, use service account key
        cred_path = os.environ.get('GOOGLE_APPLICATION_CREDENTIALS', 'serviceAccountKey.json')
        if os.path.exists(cred_path):
            initialize_app(credentials.Certificate(cred_path))
        else:
            # Use default credentials in production
            initialize_app()
    return firestore.client()

def _float_arg(name, default=None):
    value = request.args.get(name)
    if value is None or value == '':
        if default is None:
            raise ValidationError(f"Query parameter '{name}' is required", field=name)
        return default
    try:
        return float(value)
    except ValueError:
        raise ValidationError(f"Query parameter '{name}' must be a number", field=name)

def _int_arg(name, default, minimum=1, maximum=100):
    try:
        value = int(request.args.get(name, default))
    except ValueError:
        raise ValidationError(f"Query parameter '{name}' must be an integer", field=name)
    if not minimum <= value <= maximum:
        raise ValidationError(f"'{name}' must be between {minimum} and {maximum}", field=name)
    return value

def create_app(db=None):
    """
    Build the Flask app around a Firestore client (initialized on demand)
    """
    if db is None:
        db = init_firestore()

    app = Flask(__name__)
    CORS(app)

    tree_store = FirestoreRecordStore(db, 'trees')
    scan_service = ScanService(tree_store)
    species_service = SpeciesService(db)
    tree_service = TreeService(db, store=tree_store, species=species_service)
    campaign_service = CampaignService(db)
    user_service = UserService(db)
    badge_service = BadgeService(db)
    leaderboard_service = LeaderboardService(db)
    analytics_service = AnalyticsService(db)

    app.register_error_handler(Exception, handle_error)

    def _award(user_id, points, reason):
        """Points are best effort; failures come back as warnings"""
        try:
            user_service.add_points(user_id, points, reason)
            return []
        except GreenSprintError as e:
            logger.warning(f"Could not award {points} points to {user_id}: {e.message}")
            return [e.message]

    @app.route('/health', methods=['GET'])
    def health_check():
        """Health check endpoint"""
        return jsonify({
            'status': 'healthy',
            'service': 'greensprint-backend',
            'version': config.APP_VERSION
        })

    # ============= QR SCAN ENDPOINTS =============

    @app.route('/scan', methods=['POST'])
    @optional_auth
    def scan():
        """Resolve scanned QR text to a tree"""
        data = request.get_json(silent=True)
        validate_request_data(data, ['raw'], {'raw': str, 'location': dict})

        outcome = scan_service.handle_scan(
            data['raw'],
            actor_id=current_user_id(),
            location=data.get('location')
        )
        status_code = 200 if outcome.success else SCAN_STATUS_CODES.get(outcome.error_code, 400)
        return jsonify(outcome.to_dict()), status_code

    # ============= TREE ENDPOINTS =============

    @app.route('/trees', methods=['POST'])
    @require_auth
    def register_tree():
        """Register a newly planted tree"""
        data = request.get_json(silent=True)
        validate_request_data(data, ['species_id'], {
            'latitude': (int, float),
            'longitude': (int, float),
            'notes': str
        })

        user_id = current_user_id()
        result = tree_service.register_tree(user_id, data)

        # Stats and badges never undo a registered tree
        warnings = []
        new_badges = []
        try:
            profile = user_service.record_tree_planted(user_id)
            new_badges = badge_service.check_and_award(user_id, profile.get('trees_planted', 1))
        except GreenSprintError as e:
            logger.warning(f"Stats update failed for user {user_id}: {e.message}")
            warnings.append(e.message)

        campaign_id = result['tree']['campaign_id']
        if campaign_id:
            try:
                campaign_service.record_tree(campaign_id)
            except GreenSprintError as e:
                logger.warning(f"Campaign {campaign_id} tree count not updated: {e.message}")
                warnings.append(e.message)

        return jsonify({
            **result,
            'points_earned': config.POINTS['TREE_PLANTED'],
            'new_badges': new_badges,
            'warnings': warnings
        }), 201

    @app.route('/trees/<tree_id>', methods=['GET'])
    def get_tree(tree_id):
        """Get a single tree"""
        return jsonify(tree_service.get_by_id(tree_id))

    @app.route('/trees/qr/<qr_code_id>', methods=['GET'])
    def validate_qr_code(qr_code_id):
        """Check that a QR code belongs to a registered tree"""
        validation = tree_service.validate_qr_code(qr_code_id)
        if validation is None:
            return jsonify({'id': qr_code_id, 'is_valid': False}), 404
        return jsonify(validation)

    @app.route('/trees/<tree_id>/updates', methods=['GET'])
    def get_tree_updates(tree_id):
        """Health history of a tree, newest first"""
        updates = tree_service.get_updates(tree_id, limit=_int_arg('limit', 50))
        return jsonify({'updates': updates, 'count': len(updates)})

    @app.route('/trees/<tree_id>/updates', methods=['POST'])
    @require_auth
    def add_tree_update(tree_id):
        """Record a health check on a tree"""
        data = request.get_json(silent=True)
        validate_request_data(data, [], {'health_status': str, 'notes': str})
        return jsonify(tree_service.add_update(tree_id, current_user_id(), data)), 201

    # ============= SPECIES ENDPOINTS =============

    @app.route('/species', methods=['GET'])
    def list_species():
        """All species, or those matching ?q="""
        query = request.args.get('q')
        species = species_service.search(query) if query else species_service.get_all()
        return jsonify({'species': species, 'count': len(species)})

    @app.route('/species/<species_id>', methods=['GET'])
    def get_species(species_id):
        return jsonify(species_service.get_by_id(species_id))

    # ============= CAMPAIGN ENDPOINTS =============

    @app.route('/campaigns', methods=['GET'])
    def active_campaigns():
        """Most recent active campaigns"""
        limit = _int_arg('limit', 12)
        campaigns = campaign_service.get_active(limit=limit)
        return jsonify(format_success_response({'campaigns': campaigns, 'count': len(campaigns)}))

    @app.route('/campaigns/<campaign_id>', methods=['GET'])
    def get_campaign(campaign_id):
        """Get a single campaign"""
        return jsonify(format_success_response(campaign_service.get_by_id(campaign_id)))

    @app.route('/campaigns/nearby', methods=['GET'])
    def nearby_campaigns():
        """Active campaigns around a point"""
        campaigns = campaign_service.get_nearby(
            _float_arg('lat'),
            _float_arg('lng'),
            _float_arg('radius_km', config.DEFAULT_NEARBY_RADIUS_KM)
        )
        return jsonify(format_success_response({'campaigns': campaigns, 'count': len(campaigns)}))

    @app.route('/campaigns', methods=['POST'])
    @require_auth
    def create_campaign():
        """Start a new campaign"""
        data = request.get_json(silent=True)
        validate_request_data(data, ['name'], {
            'name': str,
            'description': str,
            'location_name': str,
            'latitude': (int, float),
            'longitude': (int, float),
            'target_trees': int
        })

        user_id = current_user_id()
        campaign = campaign_service.create(user_id, data)
        warnings = _award(user_id, config.POINTS['CAMPAIGN_CREATED'], 'Created a campaign')
        return jsonify(format_success_response({'campaign': campaign, 'warnings': warnings}, 'Campaign created')), 201

    @app.route('/campaigns/<campaign_id>/join', methods=['POST'])
    @require_auth
    def join_campaign(campaign_id):
        user_id = current_user_id()
        joined = campaign_service.join(campaign_id, user_id)
        # Rejoining earns nothing
        warnings = _award(user_id, config.POINTS['CAMPAIGN_JOINED'], 'Joined a campaign') if joined else []
        return jsonify(format_success_response({'joined': joined, 'warnings': warnings}))

    @app.route('/campaigns/<campaign_id>/leave', methods=['POST'])
    @require_auth
    def leave_campaign(campaign_id):
        left = campaign_service.leave(campaign_id, current_user_id())
        return jsonify(format_success_response({'left': left}))

    @app.route('/campaigns/<campaign_id>/participants', methods=['GET'])
    def campaign_participants(campaign_id):
        participants = campaign_service.get_participants(campaign_id)
        return jsonify(format_success_response({'participants': participants, 'count': len(participants)}))

    @app.route('/campaigns/<campaign_id>/trees', methods=['GET'])
    def campaign_trees(campaign_id):
        """Trees planted under a campaign, newest first"""
        trees = tree_service.get_by_campaign(campaign_id, limit=_int_arg('limit', 50))
        return jsonify(format_success_response({'trees': trees, 'count': len(trees)}))

    # ============= GAMIFICATION ENDPOINTS =============

    @app.route('/leaderboard', methods=['GET'])
    @optional_auth
    def get_leaderboard():
        """Get leaderboard data"""
        limit = _int_arg('limit', 10)
        leaderboard = leaderboard_service.get_leaderboard(limit=limit, current_user_id=current_user_id())
        return jsonify(leaderboard)

    @app.route('/achievements', methods=['GET'])
    @require_auth
    def get_achievements():
        """Achievements earned by the caller"""
        achievements = badge_service.get_user_achievements(current_user_id())
        return jsonify({'achievements': achievements, 'count': len(achievements)})

    @app.route('/stats/global', methods=['GET'])
    def global_stats():
        """Platform totals and environmental impact"""
        return jsonify(analytics_service.get_global_stats())

    @app.route('/stats/monthly', methods=['GET'])
    def monthly_stats():
        """Trees planted per month, platform-wide or for one planter"""
        months = _int_arg('months', 12, maximum=60)
        monthly = analytics_service.get_trees_by_month(user_id=request.args.get('user_id'), months=months)
        return jsonify({'months': monthly})

    # ============= USER ENDPOINTS =============

    @app.route('/users/me', methods=['GET'])
    @require_auth
    def get_my_profile():
        """Profile of the caller, with their impact"""
        profile = user_service.get_profile(current_user_id())
        profile['impact'] = analytics_service.calculate_impact(profile.get('trees_planted', 0))
        return jsonify(profile)

    @app.route('/users/me/points', methods=['GET'])
    @require_auth
    def get_my_points_history():
        """Points history of the caller, newest first"""
        limit = _int_arg('limit', 50)
        history = user_service.get_points_history(current_user_id(), limit=limit)
        return jsonify({'history': history, 'count': len(history)})

    @app.route('/users/me/trees', methods=['GET'])
    @require_auth
    def get_my_trees():
        """Trees planted by the caller, newest first"""
        trees = tree_service.get_by_user(current_user_id(), limit=_int_arg('limit', 50))
        return jsonify({'trees': trees, 'count': len(trees)})

    @app.route('/users/me/campaigns', methods=['GET'])
    @require_auth
    def get_my_campaigns():
        """Campaigns the caller has joined"""
        campaigns = campaign_service.get_user_campaigns(current_user_id())
        return jsonify({'campaigns': campaigns, 'count': len(campaigns)})

    # Error handlers
    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Endpoint not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'error': 'Method not allowed'}), 405

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({'error': 'Internal server error', 'error_code': 'INTERNAL_ERROR', 'status': 'error'}), 500

    return app

_default_app = None

def get_default_app():
    global _default_app
    if _default_app is None:
        _default_app = create_app()
    return _default_app

# Firebase Cloud Function wrapper
@https_fn.on_request(
    cors=options.CorsOptions(
        cors_origins=["*"],
        cors_methods=["GET", "POST", "OPTIONS"]
    )
)
def api(req):
    """Main Cloud Function entry point"""
    app = get_default_app()
    with app.request_context(req.environ):
        return app.full_dispatch_request()

# For local development
if __name__ == '__main__':
    get_default_app().run(debug=config.ENVIRONMENT == 'development', host='0.0.0.0', port=5000)
