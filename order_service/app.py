from flask import Blueprint, Flask, current_app, request, jsonify
from flask_cors import CORS
import logging
from datetime import datetime

from common.ids import format_timestamp, utc_now

from .config import Settings
from .database import connect_store
from .validation import build_order, is_valid_order, sanitize_order_input

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logger = logging.getLogger(__name__)

STORE_KEY = 'order_store'

orders_bp = Blueprint('orders', __name__, url_prefix='/api')


def get_store():
    return current_app.extensions[STORE_KEY]


def serialize_order(order: dict) -> dict:
    """Make a stored order JSON-friendly (string _id, ISO-8601 date)"""
    data = dict(order)
    if '_id' in data:
        data['_id'] = str(data['_id'])
    if isinstance(data.get('date'), datetime):
        data['date'] = format_timestamp(data['date'])
    return data


def _request_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@orders_bp.route('/health', methods=['GET'])
def health():
    """Health check endpoint"""
    store = get_store()
    return jsonify({
        "ok": True,
        "mongo": "connected" if store.is_connected() else "not_connected",
        "storage": store.backend
    }), 200


@orders_bp.route('/orders', methods=['GET'])
def list_orders():
    """List all orders, newest first"""
    try:
        orders = get_store().find_all()
        return jsonify([serialize_order(o) for o in orders]), 200
    except Exception as e:
        logger.error(f"Error in list_orders: {e}")
        return jsonify({"message": "Server error"}), 500


@orders_bp.route('/orders/<order_id>', methods=['GET'])
def get_order(order_id):
    """Get a specific order by ID"""
    try:
        order = get_store().find_by_id(order_id)
        if order is None:
            return jsonify({"message": "Not found"}), 404
        return jsonify(serialize_order(order)), 200
    except Exception as e:
        logger.error(f"Error in get_order: {e}")
        return jsonify({"message": "Server error"}), 500


@orders_bp.route('/orders', methods=['POST'])
def create_order():
    """
    Create a new order
    Status is forced to "pending" and date to the current time
    """
    try:
        data = sanitize_order_input(_request_body())
        if not is_valid_order(data):
            return jsonify({"message": "All fields are required"}), 400

        created = get_store().create(build_order(data, utc_now()))
        logger.info(f"Order {created['_id']} created for {created['customer']['name']}")
        return jsonify(serialize_order(created)), 201

    except Exception as e:
        logger.error(f"Error in create_order: {e}")
        return jsonify({"message": "Server error", "error": str(e)}), 500


@orders_bp.route('/orders/<order_id>/status', methods=['POST', 'PATCH'])
def update_order_status(order_id):
    """Update the status of an order"""
    try:
        status = _request_body().get('status')
        if not status:
            return jsonify({"message": "status is required"}), 400

        order = get_store().update_status(order_id, status)
        if order is None:
            return jsonify({"message": "Not found"}), 404
        logger.info(f"Order {order_id} status set to {status}")
        return jsonify(serialize_order(order)), 200
    except Exception as e:
        logger.error(f"Error in update_order_status: {e}")
        return jsonify({"message": "Server error"}), 500


@orders_bp.route('/orders/<order_id>', methods=['DELETE'])
def delete_order(order_id):
    """Delete an order"""
    try:
        if not get_store().delete(order_id):
            return jsonify({"message": "Not found"}), 404
        logger.info(f"Order {order_id} deleted")
        return jsonify({"ok": True}), 200
    except Exception as e:
        logger.error(f"Error in delete_order: {e}")
        return jsonify({"message": "Server error"}), 500


def create_app(store=None, settings: Settings = None) -> Flask:
    """
    Build the Flask app around an order store.
    Without an explicit store one is selected from settings (MongoDB or memory).
    """
    if store is None:
        store = connect_store(settings or Settings.from_env())
    logger.info(f"Using {store.backend} order storage")

    app = Flask(__name__)
    CORS(app)
    app.extensions[STORE_KEY] = store
    app.register_blueprint(orders_bp)
    return app


def main():
    settings = Settings.from_env()
    logging.basicConfig(format=LOG_FORMAT, level=settings.log_level)
    store = connect_store(settings)
    app = create_app(store)
    try:
        logger.info(f"Server listening on http://{settings.host}:{settings.port}")
        app.run(host=settings.host, port=settings.port)
    finally:
        if hasattr(store, 'close'):
            store.close()


if __name__ == '__main__':
    main()
