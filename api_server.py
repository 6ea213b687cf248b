#!/usr/bin/env python3
"""
QR Relay API Server
Scans an uploaded (or linked) image for a QR code and returns a freshly
generated code carrying the same payload.
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
    level=logging.INFO,
    format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
    datefmt='%H:%M:%S'
)

from models.errors import ImageLoadError, QrRenderError, SessionStateError
from models.scan_result import ScanResult, STATUS_LOAD_FAILED
from pipeline.relay_source import relay_image, relay_source
from services.image_service import ImageService
from services.qr_encoder_service import QrEncoderService
from services.scan_session_service import ScanSessionService

app = Flask(__name__)
CORS(app)  # Enable CORS for browser extension / frontend communication

# Configuration
ALLOWED_EXTENSIONS = set(os.getenv("ALLOWED_EXTENSIONS", "png,jpg,jpeg,gif,bmp,webp").split(","))
MAX_CONTENT_LENGTH = int(os.getenv("MAX_UPLOAD_SIZE_MB", "20")) * 1024 * 1024

app.config['MAX_CONTENT_LENGTH'] = MAX_CONTENT_LENGTH

# Initialize services
image_service = ImageService()
encoder_service = QrEncoderService()
session_service = ScanSessionService()

logger = logging.getLogger(__name__)


def allowed_file(filename: str) -> bool:
    """Check if file extension is allowed."""
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def result_to_json(session_id: str, result: ScanResult) -> dict:
    """Shape a ScanResult the way the popup displays it."""
    body = {
        'success': True,
        'session_id': session_id,
        'image_url': result.source,
        'status': result.status,
        'message': result.message,
        'payload': result.payload,
        'qr_image': None,
        'download_url': None,
    }
    if result.regenerated is not None:
        body['qr_image'] = image_service.to_base64_png(result.regenerated)
        body['download_url'] = f"/api/qr/{session_id}"
    if result.error:
        body['error'] = result.error
    return body


@app.route('/api/scan', methods=['POST'])
def scan():
    """Scan an uploaded file (multipart 'image') or a JSON {'url': ...} for a QR code."""
    try:
        if 'image' in request.files:
            file = request.files['image']
            if file.filename == '' or not allowed_file(file.filename):
                return jsonify({'success': False, 'message': 'No valid image file provided'}), 400

            source = secure_filename(file.filename)
            session = session_service.open(source)
            try:
                img = image_service.decode_bytes(file.read(), source=source)
            except ImageLoadError as e:
                logger.warning(f"Upload {source} could not be decoded: {e}")
                result = ScanResult(source=source, status=STATUS_LOAD_FAILED, error=str(e))
            else:
                result = relay_image(img, encoder_service=encoder_service)
        else:
            payload = request.get_json(silent=True) or {}
            url = payload.get('url')
            if not url:
                return jsonify({'success': False, 'message': 'Provide an image file or a url'}), 400
            session = session_service.open(url)
            result = relay_source(url, image_service=image_service, encoder_service=encoder_service)

        session_service.populate(session, result)
        logger.info(f"Scan of {result.source} finished: {result.status}")
        return jsonify(result_to_json(session.session_id, result))

    except SessionStateError as e:
        # A newer scan replaced this popup while it was being filled.
        logger.warning(f"Scan result dropped: {e}")
        return jsonify({'success': False, 'status': 'superseded', 'message': str(e)}), 409

    except Exception as e:
        logger.error(f"Scan error: {e}")
        return jsonify({'success': False, 'message': f'Error scanning image: {str(e)}'}), 500


@app.route('/api/qr/<session_id>')
def download_qr(session_id):
    """Download the regenerated code of the current session as qrcode.png."""
    session = session_service.get(session_id)
    if session is None or session.result is None or session.result.regenerated is None:
        return jsonify({'error': 'No generated QR code for this session'}), 404

    png = image_service.to_png_bytes(session.result.regenerated)
    return send_file(BytesIO(png), mimetype='image/png', as_attachment=True, download_name='qrcode.png')


@app.route('/api/encode', methods=['POST'])
def encode():
    """Render arbitrary text as a new QR code."""
    payload = request.get_json(silent=True) or {}
    text = payload.get('text')
    if not text:
        return jsonify({'success': False, 'message': 'No text provided'}), 400
    try:
        img = encoder_service.render(text)
    except QrRenderError as e:
        logger.error(f"Render error: {e}")
        return jsonify({'success': False, 'message': str(e)}), 422
    return jsonify({'success': True, 'qr_image': image_service.to_base64_png(img)})


@app.route('/api/close-session', methods=['POST'])
def close_session():
    """Dismiss the popup."""
    try:
        session_id = (request.get_json(silent=True) or {}).get('session_id')
        if session_id and session_service.close(session_id):
            return jsonify({'success': True, 'message': 'Session closed'})
        return jsonify({'success': False, 'message': 'Session not found'}), 404
    except SessionStateError as e:
        logger.error(f"Error closing session: {e}")
        return jsonify({'success': False, 'message': str(e)}), 409


@app.route('/api/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    current = session_service.current
    return jsonify({
        'status': 'healthy',
        'message': 'QR Relay API is running',
        'active_session': current.session_id if current is not None and current.is_active else None,
    })


@app.errorhandler(413)
def too_large(e):
    """Handle file too large error."""
    return jsonify({'error': f'File too large. Maximum size is {MAX_CONTENT_LENGTH // (1024 * 1024)}MB.'}), 413


@app.errorhandler(500)
def internal_error(e):
    """Handle internal server error."""
    logger.error(f"Internal server error: {e}")
    return jsonify({'error': 'Internal server error'}), 500


if __name__ == '__main__':
    print("🚀 Starting QR Relay API Server...")
    print(f"🔧 Max upload size: {MAX_CONTENT_LENGTH // (1024*1024)}MB")
    print("🌐 CORS enabled for frontend communication")
    print("📋 Endpoints:")
    print("   POST /api/scan")
    print("   GET  /api/qr/<session_id>")
    print("   POST /api/encode")
    print("   POST /api/close-session")
    print("="*60)

    app.run(host=os.getenv("API_HOST", "127.0.0.1"), port=int(os.getenv("API_PORT", "5000")), debug=False)
