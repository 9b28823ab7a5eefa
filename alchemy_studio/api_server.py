#!/usr/bin/env python3
"""
Digital Alchemy Studio API Server
One endpoint per studio control: load, sliders, effect buttons, reset, export.
"""

import os
import logging
from io import BytesIO

from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from flask import Flask, request, jsonify, send_file
from flask_cors import CORS
from werkzeug.utils import secure_filename

# --- Centralized Logging Configuration ---
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
    datefmt='%H:%M:%S'
)

from .models.transform_params import TransformKind
from .pipeline.export_page import render_export_page
from .repositories.image_repository import ImageDecodeError
from .services.image_service import ImageService
from .services.session_service import NoImageLoadedError, SessionService

app = Flask(__name__)
CORS(app)  # Enable CORS for frontend communication

# Configuration
ALLOWED_EXTENSIONS = set(os.getenv("ALLOWED_EXTENSIONS", "png,jpg,jpeg,gif,bmp,webp,tif,tiff").split(","))
MAX_CONTENT_LENGTH = int(os.getenv("MAX_UPLOAD_SIZE_MB", "25")) * 1024 * 1024

app.config['MAX_CONTENT_LENGTH'] = MAX_CONTENT_LENGTH

# Initialize services
image_service = ImageService()
session_service = SessionService(image_service=image_service)

logger = logging.getLogger(__name__)


def allowed_file(filename: str) -> bool:
    """Check if file extension is allowed."""
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def _payload() -> dict:
    """JSON body or form fields, whichever the client sent."""
    return request.get_json(silent=True) or request.form.to_dict()


def _session_or_error(session_id):
    session = session_service.get(session_id)
    if session is None:
        return None, (jsonify({'success': False, 'message': 'Invalid session'}), 400)
    return session, None


def _image_response(session, message: str):
    image = session.current
    return jsonify({
        'success': True,
        'session_id': session.session_id,
        'width': image.width,
        'height': image.height,
        'filter': session.last_effect.value if session.last_effect else None,
        'image': image_service.to_data_url(image),
        'message': message,
    })


@app.route('/api/load-image', methods=['POST'])
def load_image():
    """Load an uploaded image as the session's original."""
    try:
        if 'image' not in request.files:
            return jsonify({'success': False, 'message': 'No image provided'}), 400

        file = request.files['image']
        if file.filename == '':
            return jsonify({'success': False, 'message': 'No file selected'}), 400
        if not allowed_file(file.filename):
            return jsonify({'success': False, 'message': f'Unsupported file type: {file.filename}'}), 400

        filename = secure_filename(file.filename)
        image = image_service.decode_upload(file.read(), filename=filename)

        session = session_service.get_or_create(request.form.get('session_id'))
        original = session_service.load_image(session, image)

        logger.info(f"Loaded {filename} into session {session.session_id}")

        return jsonify({
            'success': True,
            'session_id': session.session_id,
            'width': original.width,
            'height': original.height,
            'info': image_service.describe(original),
            'image': image_service.to_data_url(original),
            'message': f'Loaded {filename}',
        })

    except ImageDecodeError as e:
        logger.warning(f"Upload decode failed: {e}")
        return jsonify({'success': False, 'message': 'Could not decode image'}), 400
    except Exception as e:
        logger.error(f"Image loading error: {e}")
        return jsonify({'success': False, 'message': f'Error loading image: {str(e)}'}), 500


@app.route('/api/settings', methods=['POST'])
def update_settings():
    """Move the pixel-size / threshold sliders."""
    data = _payload()
    session, error = _session_or_error(data.get('session_id'))
    if error:
        return error

    try:
        settings = session_service.update_settings(
            session,
            pixel_size=data.get('pixel_size'),
            threshold_level=data.get('threshold_level'),
        )
    except (TypeError, ValueError) as e:
        return jsonify({'success': False, 'message': str(e)}), 400

    return jsonify({
        'success': True,
        'session_id': session.session_id,
        'pixel_size': settings.pixel_size,
        'threshold_level': settings.threshold_level,
    })


@app.route('/api/apply-effect', methods=['POST'])
def apply_effect():
    """Re-render the original through one filter."""
    data = _payload()
    session, error = _session_or_error(data.get('session_id'))
    if error:
        return error

    name = data.get('filter')
    try:
        kind = TransformKind(name)
    except ValueError:
        valid = ", ".join(k.value for k in TransformKind)
        return jsonify({'success': False, 'message': f'Unknown filter {name!r}. Expected one of: {valid}'}), 400

    try:
        session_service.apply_effect(session, kind)
    except NoImageLoadedError as e:
        return jsonify({'success': False, 'message': str(e)}), 400
    except Exception as e:
        logger.error(f"Effect {kind.value} failed: {e}")
        return jsonify({'success': False, 'message': f'Error applying {kind.value}: {str(e)}'}), 500

    return _image_response(session, f'Applied {kind.value}')


@app.route('/api/reset', methods=['POST'])
def reset():
    """Show the original again."""
    data = _payload()
    session, error = _session_or_error(data.get('session_id'))
    if error:
        return error
    try:
        session_service.reset(session)
    except NoImageLoadedError as e:
        return jsonify({'success': False, 'message': str(e)}), 400
    return _image_response(session, 'Reset to original')


@app.route('/api/image/<session_id>')
def serve_image(session_id):
    """Serve the current image as PNG."""
    session = session_service.get(session_id)
    if session is None or session.current is None:
        return jsonify({'error': 'Image not found'}), 404
    png = image_service.encode_png(session.current)
    return send_file(BytesIO(png), mimetype='image/png')


@app.route('/api/export/<session_id>')
def export(session_id):
    """Standalone HTML viewer with a PNG download link."""
    session = session_service.get(session_id)
    if session is None or session.current is None:
        return jsonify({'error': 'Image not found'}), 404
    html = render_export_page(session.current, image_service=image_service)
    return html, 200, {'Content-Type': 'text/html; charset=utf-8'}


@app.route('/api/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return jsonify({
        'status': 'healthy',
        'message': 'Digital Alchemy Studio API is running',
        'active_sessions': len(session_service),
        'filters': [k.value for k in TransformKind],
    })


@app.route('/api/clear-session', methods=['POST'])
def clear_session():
    """Clear a session and free memory."""
    data = _payload()
    session_id = data.get('session_id')
    if session_id and session_service.drop(session_id):
        return jsonify({'success': True, 'message': 'Session cleared'})
    return jsonify({'success': False, 'message': 'Session not found'})


@app.errorhandler(413)
def too_large(e):
    """Handle file too large error."""
    return jsonify({'error': f'File too large. Maximum size is {MAX_CONTENT_LENGTH // (1024 * 1024)}MB.'}), 413


@app.errorhandler(400)
def bad_request(e):
    """Handle bad request error."""
    return jsonify({'error': 'Bad request'}), 400


@app.errorhandler(500)
def internal_error(e):
    """Handle internal server error."""
    logger.error(f"Internal server error: {e}")
    return jsonify({'error': 'Internal server error'}), 500


def main():
    host = os.getenv("API_HOST", "127.0.0.1")
    port = int(os.getenv("API_PORT", "5000"))
    logger.info(f"Starting Digital Alchemy Studio API on {host}:{port}")
    logger.info(f"Max upload size: {MAX_CONTENT_LENGTH // (1024 * 1024)}MB")
    logger.info(f"Filters: {', '.join(k.value for k in TransformKind)}")
    app.run(host=host, port=port, debug=False)


if __name__ == '__main__':
    main()
