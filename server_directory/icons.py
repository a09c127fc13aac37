import base64
import binascii
import hashlib
import re
from datetime import datetime

from .app import app, db
from .models import ServerIcon


MIN_ICON_LENGTH = 100
MAX_ICON_LENGTH = 100000

BASE64_RE = re.compile(r"^[A-Za-z0-9+/]*={0,2}$")

# Base64 encoded magic numbers of the accepted image formats
IMAGE_SIGNATURES = (
	"/9j/",         # JPEG
	"iVBORw0KGgo",  # PNG
	"R0lGOD",       # GIF
	"UklGR",        # WebP
	"Qk0",          # BMP
)


def clean_icon_data(payload):
	"""Strips a data URI header such as "data:image/png;base64,"."""
	if payload.startswith("data:image/"):
		i = payload.find("base64,")
		if i != -1:
			return payload[i + len("base64,"):]
	return payload


def is_valid_icon(data):
	if not data or not isinstance(data, str):
		return False

	if not MIN_ICON_LENGTH <= len(data) <= MAX_ICON_LENGTH:
		return False

	if not BASE64_RE.match(data):
		return False

	try:
		decoded = base64.b64decode(data, validate=True)
	except (binascii.Error, ValueError):
		return False

	if base64.b64encode(decoded).decode("ascii") != data:
		return False

	return data.startswith(IMAGE_SIGNATURES)


def icon_hash(data):
	return hashlib.sha256(data.encode("ascii")).hexdigest()


def update_server_icon(server, payload):
	"""Stores a new icon for a server.

	Returns True if the stored icon was written, False if the payload was
	rejected or is identical to the stored icon.
	"""
	if not isinstance(payload, str) or not payload.strip():
		return False

	data = clean_icon_data(payload.strip())
	icon = ServerIcon.query.filter_by(server_id=server.id).one_or_none()

	if not is_valid_icon(data):
		app.logger.warning("Invalid icon data for server %d, discarding.", server.id)
		if icon is not None:
			db.session.delete(icon)
		return False

	digest = icon_hash(data)
	if icon is not None and icon.icon_hash == digest:
		return False

	if icon is None:
		icon = ServerIcon(server_id=server.id)
		db.session.add(icon)

	icon.icon_data = data
	icon.icon_hash = digest
	icon.last_updated = datetime.utcnow()

	app.logger.info("Updated icon for server %d (%d chars).", server.id, len(data))
	return True


def get_server_icon(server_id):
	icon = ServerIcon.query.filter_by(server_id=server_id).one_or_none()
	if icon is None or icon.icon_data is None:
		return None

	if not is_valid_icon(icon.icon_data):
		app.logger.warning("Stored icon of server %d is invalid, removing it.", server_id)
		db.session.delete(icon)
		db.session.commit()
		return None

	return icon.icon_data
