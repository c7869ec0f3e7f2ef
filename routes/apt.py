"""
APT decoding routes.

Provides REST API for decoding uploaded NOAA APT recordings, resampling WAV
files and managing decoded images.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from flask import Blueprint, Response, jsonify, request, send_file
from werkzeug.utils import secure_filename

from noaa_apt.apt_decoder import DecodeOptions, get_apt_decoder
from noaa_apt.config import PROFILES, get_profile
from noaa_apt.errors import AptError, InvalidParameterError, ProtocolViolationError
from noaa_apt.image import Contrast
from noaa_apt.logging import get_logger

logger = get_logger('noaa_apt.routes')

apt_bp = Blueprint('apt', __name__, url_prefix='/apt')

TRUE_VALUES = ('1', 'true', 'yes', 'on')


def _flag(name: str, default: bool = False) -> bool:
    value = request.form.get(name)
    if value is None:
        return default
    return value.lower() in TRUE_VALUES


def _error(e: AptError) -> tuple[Response, int]:
    """Report a decoder failure, internal defects as server errors."""
    status = 500 if isinstance(e, ProtocolViolationError) else 400
    return jsonify({
        'status': 'error',
        'error': type(e).__name__,
        'message': str(e),
    }), status


def _save_upload(directory: Path, unique: bool = False) -> Path | None:
    """Store the uploaded ``audio`` file, ``None`` if there is none.

    With ``unique`` the file gets a fresh name in ``directory`` so uploads
    with the same filename don't overwrite each other.
    """
    upload = request.files.get('audio')
    if upload is None or not upload.filename:
        return None
    filename = secure_filename(upload.filename) or 'recording.wav'
    if unique:
        fd, name = tempfile.mkstemp(
            dir=directory, prefix=f'{Path(filename).stem}_', suffix='.wav')
        os.close(fd)
        path = Path(name)
    else:
        path = directory / filename
    upload.save(path)
    return path


@apt_bp.route('/status')
def apt_status() -> Response:
    """Get decoder status and the last progress update."""
    decoder = get_apt_decoder()
    progress = decoder.last_progress

    return jsonify({
        'running': decoder.is_running,
        'output_dir': str(decoder.output_dir),
        'image_count': len(decoder.get_images()),
        'progress': progress.to_dict() if progress else None,
    })


@apt_bp.route('/profiles')
def get_profiles() -> Response:
    """List processing profiles."""
    return jsonify({
        'status': 'success',
        'default': get_profile().name,
        'profiles': [profile.to_dict() for profile in PROFILES.values()],
    })


@apt_bp.route('/decode', methods=['POST'])
def decode_recording() -> Response:
    """
    Decode an uploaded recording.

    Multipart form:
        - audio: WAV file
        - profile: 'standard', 'fast' or 'slow' (optional)
        - contrast: '98_percent', 'telemetry' or 'disable' (optional)
        - rotate: Rotate the image 180 degrees (optional)
        - sync: Align rows to sync frames, default true (optional)
        - background: Decode on a worker thread and return immediately

    Returns:
        JSON with the decoded image, or the decode status when running in
        the background.
    """
    decoder = get_apt_decoder()

    try:
        options = DecodeOptions(
            profile=get_profile(request.form.get('profile')),
            contrast=Contrast.from_name(request.form.get('contrast')),
            rotate=_flag('rotate'),
            sync=_flag('sync', default=True),
        )
    except InvalidParameterError as e:
        return _error(e)

    if _flag('background'):
        upload_dir = decoder.output_dir / 'uploads'
        upload_dir.mkdir(parents=True, exist_ok=True)
        audio_path = _save_upload(upload_dir, unique=True)
        if audio_path is None:
            return jsonify({'status': 'error', 'message': 'No audio file provided'}), 400

        # The worker removes the upload when it finishes
        if not decoder.start_decode(audio_path, options, delete_audio=True):
            audio_path.unlink(missing_ok=True)
            return jsonify({
                'status': 'already_running',
                'message': 'A decode is already running',
            }), 409

        return jsonify({
            'status': 'started',
            'message': f'Decoding {audio_path.name}',
        }), 202

    with tempfile.TemporaryDirectory() as tmp_dir:
        audio_path = _save_upload(Path(tmp_dir))
        if audio_path is None:
            return jsonify({'status': 'error', 'message': 'No audio file provided'}), 400

        try:
            image = decoder.decode_file(audio_path, options)
        except AptError as e:
            logger.error(f"Error decoding {audio_path.name}: {e}")
            return _error(e)

    return jsonify({
        'status': 'success',
        'image': image.to_dict(),
    })


@apt_bp.route('/resample', methods=['POST'])
def resample_recording() -> Response:
    """
    Resample an uploaded WAV file.

    Multipart form:
        - audio: WAV file
        - rate: Output sample rate in Hz
        - profile: Profile used for the filter parameters (optional)

    Returns:
        The resampled 16 bit WAV file.
    """
    decoder = get_apt_decoder()

    try:
        rate = int(request.form.get('rate', ''))
    except ValueError:
        return jsonify({'status': 'error', 'message': 'Invalid output rate'}), 400
    if rate <= 0:
        return jsonify({'status': 'error', 'message': 'Invalid output rate'}), 400

    with tempfile.TemporaryDirectory() as tmp_dir:
        audio_path = _save_upload(Path(tmp_dir))
        if audio_path is None:
            return jsonify({'status': 'error', 'message': 'No audio file provided'}), 400

        output_path = Path(tmp_dir) / f"{audio_path.stem}_{rate}.wav"
        try:
            decoder.resample_file(
                audio_path, output_path, rate,
                profile=get_profile(request.form.get('profile')))
        except AptError as e:
            logger.error(f"Error resampling {audio_path.name}: {e}")
            return _error(e)

        data = output_path.read_bytes()

    response = Response(data, mimetype='audio/wav')
    response.headers['Content-Disposition'] = (
        f'attachment; filename={output_path.name}')
    return response


@apt_bp.route('/images')
def list_images() -> Response:
    """Get list of decoded images."""
    images = get_apt_decoder().get_images()
    return jsonify({
        'status': 'success',
        'images': [img.to_dict() for img in images],
        'count': len(images),
    })


@apt_bp.route('/images/<filename>')
def get_image(filename: str) -> Response:
    """Serve a decoded image."""
    decoder = get_apt_decoder()

    # Security: only allow PNG files from the output directory
    if filename != secure_filename(filename) or not filename.endswith('.png'):
        return jsonify({'status': 'error', 'message': 'Invalid filename'}), 400

    image_path = decoder.output_dir / filename
    if not image_path.exists():
        return jsonify({'status': 'error', 'message': 'Image not found'}), 404

    return send_file(image_path.resolve(), mimetype='image/png')


@apt_bp.route('/images/<filename>', methods=['DELETE'])
def delete_image(filename: str) -> Response:
    """Delete a decoded image."""
    if filename != secure_filename(filename) or not filename.endswith('.png'):
        return jsonify({'status': 'error', 'message': 'Invalid filename'}), 400

    if get_apt_decoder().delete_image(filename):
        return jsonify({'status': 'success'})

    return jsonify({'status': 'error', 'message': 'Image not found'}), 404
