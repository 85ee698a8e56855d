from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({
        'message': 'Welcome to the BlockClaim server!',
        'gridSize': current_app.config.get('GRID_SIZE', 50),
        'socketNamespace': current_app.config.get('SOCKETIO_NAMESPACE', '/ws'),
    })
