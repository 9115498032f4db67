# app.py - Flask Web Application for Document Placeholder Filling
# Stateless JSON API: every request carries the original template and is re-scanned

import io
import json
import os

from flask import Flask, request, jsonify, send_file
from flask_cors import CORS
from werkzeug.utils import secure_filename

from config import (
    ALLOWED_EXTENSIONS,
    DOCX_MIMETYPE,
    FLASK_DEBUG,
    FLASK_HOST,
    FLASK_PORT,
    MAX_FILE_SIZE_MB,
    OUTPUT_FILENAME,
)
from docfill.field_prompts import question_for
from docfill.placeholder_filler import PlaceholderFiller

app = Flask(__name__)
CORS(app)

app.config['MAX_CONTENT_LENGTH'] = MAX_FILE_SIZE_MB * 1024 * 1024


class RequestError(Exception):
    """Client-side problem with the uploaded form"""
    pass


def allowed_file(filename):
    return os.path.splitext(filename)[1].lower() in ALLOWED_EXTENSIONS


def read_upload():
    """Bytes of the uploaded template plus its sanitized filename."""
    if 'file' not in request.files:
        raise RequestError('No file provided')

    file = request.files['file']
    if file.filename == '':
        raise RequestError('No file selected')
    if not allowed_file(file.filename):
        raise RequestError('Please upload a .docx file')

    data = file.read()
    if not data:
        raise RequestError('Uploaded file is empty')
    return data, secure_filename(file.filename)


def read_values():
    """Answers from the 'values' form field (JSON object of key -> answer)."""
    raw = request.form.get('values', '{}')
    try:
        values = json.loads(raw)
    except json.JSONDecodeError as e:
        raise RequestError(f'Invalid values JSON: {e}') from e
    if not isinstance(values, dict):
        raise RequestError('Values must be a JSON object')
    return {str(k): str(v) for k, v in values.items() if v is not None}


@app.errorhandler(RequestError)
def handle_request_error(e):
    return jsonify({'success': False, 'error': str(e)}), 400


@app.errorhandler(413)
def handle_too_large(e):
    return jsonify({'success': False, 'error': f'File exceeds {MAX_FILE_SIZE_MB}MB'}), 413


# ============== API ==============

@app.route('/api/health', methods=['GET'])
def health():
    return jsonify({'success': True, 'status': 'ok'})


@app.route('/api/scan', methods=['POST'])
def scan():
    """Detect placeholders in an uploaded template"""
    data, filename = read_upload()

    filler = PlaceholderFiller()
    result = filler.scan_bytes(data)
    if not result.success:
        app.logger.warning(f"Could not read {filename}: {result.errors}")
        return jsonify({'success': False, 'error': 'Could not read document', 'errors': result.errors}), 400

    placeholders = []
    for key in result.ordered_keys:
        descriptor = result.catalog.get(key)
        entry = descriptor.to_dict()
        entry['occurrences'] = len(result.catalog.occurrences(key))
        entry['question'] = question_for(descriptor)
        placeholders.append(entry)

    app.logger.info(f"Scanned {filename}: {len(placeholders)} placeholders")
    return jsonify({
        'success': True,
        'filename': filename,
        'placeholders': placeholders,
        'text': result.text,
        'metadata': result.document.metadata,
    })


@app.route('/api/preview', methods=['POST'])
def preview():
    """Render the filled text for the answers given so far"""
    data, filename = read_upload()
    values = read_values()

    try:
        filler = PlaceholderFiller()
        scan_result = filler.scan_bytes(data)
        if not scan_result.success:
            return jsonify({'success': False, 'error': 'Could not read document', 'errors': scan_result.errors}), 400

        resolved = filler.resolve(scan_result.catalog, values)
        return jsonify({
            'success': True,
            'filename': filename,
            'text': filler.renderer.render(scan_result.text, resolved),
            'values': {key: resolved.get(key) for key in resolved.values},
            'pending': resolved.pending_keys(),
            'complete': resolved.is_complete(),
        })

    except Exception as e:
        app.logger.error(f"Error rendering preview: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@app.route('/api/fill', methods=['POST'])
def fill():
    """Return the completed document"""
    data, filename = read_upload()
    values = read_values()

    filler = PlaceholderFiller()
    scan_result = filler.scan_bytes(data)
    if not scan_result.success:
        return jsonify({'success': False, 'error': 'Could not read document', 'errors': scan_result.errors}), 400

    result = filler.fill_from_bytes(data, values, scan=scan_result)

    if not result.success:
        app.logger.error(f"Failed to fill {filename}: {result.errors}")
        return jsonify({
            'success': False,
            'error': 'Failed to fill placeholders',
            'errors': result.errors
        }), 500

    app.logger.info(f"Filled {result.placeholders_filled}/{result.placeholders_found} "
                    f"placeholders in {filename}")
    if result.unfilled:
        app.logger.info(f"Unfilled: {result.unfilled}")

    return send_file(
        io.BytesIO(result.document_bytes),
        mimetype=DOCX_MIMETYPE,
        as_attachment=True,
        download_name=OUTPUT_FILENAME
    )


if __name__ == '__main__':
    print("=" * 50)
    print("Document Placeholder Filler API")
    print("=" * 50)
    print(f"Starting server at http://{FLASK_HOST}:{FLASK_PORT}")
    print("=" * 50)

    app.run(debug=FLASK_DEBUG, host=FLASK_HOST, port=FLASK_PORT)
