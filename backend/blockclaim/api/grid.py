from flask import Blueprint, jsonify
from blockclaim import get_gateway


grid = Blueprint('grid', __name__)


@grid.route('/blocks', methods=['GET'])
def get_blocks():
    """Full grid snapshot for clients that have not opened a socket yet."""
    return jsonify({'success': True, 'blocks': get_gateway().get_snapshot()})


@grid.route('/stats', methods=['GET'])
def get_stats():
    return jsonify({'success': True, 'stats': get_gateway().get_stats()})
