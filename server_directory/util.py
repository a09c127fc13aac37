import re

from sqlalchemy.dialects import postgresql, sqlite

from .app import db
from .models import PLATFORMS


def normalize_ip(ip):
	if ip and ip.startswith("::ffff:"):
		return ip[7:]
	return ip


def upsert_stmt(model, values):
	"""INSERT statement for `model` supporting ON CONFLICT clauses.

	Uses the dialect of the configured database; PostgreSQL and SQLite are
	supported.
	"""
	dialect = db.engine.dialect.name
	if dialect == "postgresql":
		insert = postgresql.insert
	elif dialect == "sqlite":
		insert = sqlite.insert
	else:
		raise NotImplementedError(f"Upserts are not supported on {dialect}")
	return insert(model.__table__).values(values)


def slugify(name):
	slug = re.sub(r"[^a-zA-Z0-9]+", "-", name).strip("-").lower()
	return slug or "server"


HOSTNAME_RE = re.compile(r"^[A-Za-z0-9.\-_:\[\]]+$")


# fieldName: (Required, Type, SubType)
fields = {
	"name": (True, "str"),
	"address": (True, "str"),
	"java_port": (False, "int"),
	"bedrock_port": (False, "int"),
	"query_port": (False, "int"),
	"platform": (True, "str"),

	"gamemode": (True, "str"),
	"additional_gamemodes": (False, "list", "str"),

	"min_version": (False, "str"),
	"max_version": (False, "str"),
	"country": (False, "str"),

	"website": (False, "str"),
	"discord": (False, "str"),
	"youtube": (False, "str"),
	"banner_url": (False, "str"),

	"description": (True, "str"),

	# Flags
	"has_whitelist": (False, "bool"),
}

URL_FIELDS = ("website", "discord", "youtube", "banner_url")


def check_request_json(obj, partial=False):
	"""Checks the types and values of fields in the request.

	With `partial` set required fields may be missing, for updates.

	Returns error string or None.
	"""
	for name, data in fields.items():
		# Delete optional string fields sent as empty strings
		if not data[0] and data[1] == "str" and obj.get(name) == "":
			del obj[name]

		if not name in obj:
			if data[0] and not partial:
				return f"Required field '{name}' is missing."
			continue

		type_str = type(obj[name]).__name__
		if type_str != data[1]:
			return f"Field '{name}' has incorrect type (expected {data[1]} found {type_str})."

		if len(data) >= 3:
			for item in obj[name]:
				subtype_str = type(item).__name__
				if subtype_str != data[2]:
					return f"Entry in field '{name}' has incorrect type (expected {data[2]} found {subtype_str})."

	for name in ("name", "description", "gamemode", "address"):
		if name in obj and not obj[name].strip():
			return f"Field '{name}' must not be empty."

	if "address" in obj and not HOSTNAME_RE.match(obj["address"]):
		return "Field 'address' does not match expected format."

	for name in ("java_port", "bedrock_port", "query_port"):
		if name in obj and not 1 <= obj[name] <= 65535:
			return f"Field '{name}' is out of range."

	if "platform" in obj and obj["platform"] not in PLATFORMS:
		return "Field 'platform' must be one of " + ", ".join(PLATFORMS) + "."

	for name in URL_FIELDS:
		if name in obj:
			url = obj[name]
			if not any(url.startswith(p) for p in ["http://", "https://", "//"]):
				return f"Field '{name}' does not match expected format."

	return None
