# agrireach/uploads/routes.py
import os
import uuid
from flask import Blueprint, current_app, request, send_from_directory
from flask_login import login_required, current_user
from werkzeug.utils import secure_filename
from agrireach.init_db import db
from agrireach.api import json_ok, json_error
from agrireach.decorators import is_owner_or_admin
from agrireach.logging_config import setup_logging
from agrireach.uploads.models import Upload, UPLOAD_TYPES

uploads_bp = Blueprint('uploads', __name__)

logger = setup_logging()


def file_extension(filename):
    return filename.rsplit('.', 1)[1].lower() if '.' in filename else ''


def upload_dir(upload_type):
    path = os.path.join(current_app.config['UPLOAD_FOLDER'], upload_type)
    os.makedirs(path, exist_ok=True)
    return path


@uploads_bp.route('', methods=['POST'])
@login_required
def upload_file():
    upload_type = request.form.get('type', 'document')
    if upload_type not in UPLOAD_TYPES:
        return json_error(f"Invalid upload type. Allowed: {', '.join(sorted(UPLOAD_TYPES))}", 400)

    file = request.files.get('file')
    if file is None or not file.filename:
        return json_error('No file provided', 400)

    original_name = secure_filename(file.filename) or 'upload'
    extension = file_extension(file.filename)
    if extension not in UPLOAD_TYPES[upload_type]:
        return json_error(f"File type not allowed for {upload_type}. "
                          f"Allowed: {', '.join(sorted(UPLOAD_TYPES[upload_type]))}", 400)

    filename = f"{current_user.id}_{uuid.uuid4().hex}.{extension}"
    path = os.path.join(upload_dir(upload_type), filename)
    try:
        file.save(path)
    except OSError as e:
        logger.error(f"Error saving upload {filename}: {e}")
        return json_error('Failed to store file', 500)

    upload = Upload(user_id=current_user.id, filename=filename, original_name=original_name,
                    mime_type=file.mimetype, size=os.path.getsize(path),
                    url=f'/api/upload/files/{upload_type}/{filename}', type=upload_type)
    db.session.add(upload)
    if upload_type == 'avatar':
        current_user.avatar_url = upload.url
    db.session.commit()

    logger.info(f"User {current_user.id} uploaded {upload_type} {filename}.")
    return json_ok({'upload': upload.to_dict(), 'url': upload.url}, 201)


@uploads_bp.route('', methods=['GET'])
@login_required
def list_uploads():
    query = Upload.query.filter_by(user_id=current_user.id)
    if request.args.get('type'):
        query = query.filter(Upload.type == request.args['type'])
    uploads = query.order_by(Upload.created_at.desc(), Upload.id.desc()).all()
    return json_ok({'uploads': [u.to_dict() for u in uploads]})


@uploads_bp.route('/<int:upload_id>', methods=['DELETE'])
@login_required
def delete_upload(upload_id):
    upload = db.session.get(Upload, upload_id)
    if not upload:
        return json_error('Upload not found', 404)
    if not is_owner_or_admin(upload.user_id):
        return json_error('Forbidden', 403)

    path = os.path.join(current_app.config['UPLOAD_FOLDER'], upload.type, upload.filename)
    try:
        os.remove(path)
    except FileNotFoundError:
        logger.warning(f"Upload file already missing: {path}")

    if upload.owner and upload.owner.avatar_url == upload.url:
        upload.owner.avatar_url = None
    db.session.delete(upload)
    db.session.commit()
    return json_ok({'message': 'File deleted'})


@uploads_bp.route('/files/<upload_type>/<path:filename>', methods=['GET'])
def serve_file(upload_type, filename):
    if upload_type not in UPLOAD_TYPES:
        return json_error('Not found', 404)
    return send_from_directory(os.path.join(current_app.config['UPLOAD_FOLDER'], upload_type), filename)
