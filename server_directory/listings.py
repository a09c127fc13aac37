from datetime import datetime

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from .analytics import record_event
from .app import app, db
from .errors import (InvalidTransition, NotFound, PermissionDenied,
	ValidationError, VoteCooldown)
from .models import (PLATFORMS, STATUS_TRANSITIONS, STATUSES, Review, Server,
	SponsoredServer, UserProfile, Vote)
from .ranking import maybe_schedule_rank_update
from .util import check_request_json, slugify


REVIEW_MIN_LENGTH = 100
REVIEW_MAX_LENGTH = 500

EPOCH = datetime(1970, 1, 1)

# Fields that a change to requires a fresh status check
ADDRESS_FIELDS = ("address", "java_port", "bedrock_port", "platform")


def require_user(user):
	if user is None:
		raise PermissionDenied("You must be signed in to do that.")
	if user.is_banned:
		raise PermissionDenied("Your account has been banned.")


def require_admin(user):
	if user is None or not user.is_admin:
		raise PermissionDenied()


def require_owner(user, server):
	if user is None or (user.id != server.user_id and not user.is_admin):
		raise PermissionDenied()


def unique_slug(name, server_id=None):
	base = slugify(name)
	slug = base
	counter = 1
	while True:
		other = Server.query.filter_by(slug=slug).first()
		if other is None or other.id == server_id:
			return slug
		counter += 1
		slug = f"{base}-{counter}"


def apply_fields(server, obj):
	for name in ("name", "address", "java_port", "bedrock_port", "query_port",
			"platform", "gamemode", "min_version", "max_version", "country",
			"website", "discord", "youtube", "banner_url", "description",
			"has_whitelist"):
		if name in obj:
			value = obj[name]
			setattr(server, name, value.strip() if isinstance(value, str) else value)

	if "additional_gamemodes" in obj:
		server.additional_gamemodes = ",".join(obj["additional_gamemodes"]) or None


def create_server(user, obj):
	"""Submits a new server for moderation.  The caller commits."""
	require_user(user)

	error_str = check_request_json(obj)
	if error_str is not None:
		raise ValidationError(error_str)

	server = Server(user_id=user.id, status="pending", votes=0)
	apply_fields(server, obj)
	server.slug = unique_slug(server.name)
	db.session.add(server)

	app.logger.info("Server %r submitted by %s.", server.name, user.id)
	return server


def update_server(user, server, obj):
	require_owner(user, server)

	error_str = check_request_json(obj, partial=True)
	if error_str is not None:
		raise ValidationError(error_str)

	address_changed = any(name in obj and obj[name] != getattr(server, name)
		for name in ADDRESS_FIELDS)
	name_changed = "name" in obj and obj["name"].strip() != server.name

	apply_fields(server, obj)

	if name_changed:
		server.slug = unique_slug(server.name, server.id)

	# The last status belongs to the old address
	if address_changed:
		server.set_offline()

	return server


def delete_server(user, server):
	require_owner(user, server)
	app.logger.info("Server %d deleted by %s.", server.id, user.id)
	db.session.delete(server)


def set_server_status(user, server, status):
	"""Moderation: approve or reject a server."""
	require_admin(user)

	if status == server.status:
		return server

	if status not in STATUS_TRANSITIONS.get(server.status, ()):
		raise InvalidTransition(server.status, status)

	app.logger.info("Server %d status changed from %s to %s by %s.",
		server.id, server.status, status, user.id)
	server.status = status
	return server


def list_servers(gamemode=None, platform=None, search=None, status="approved",
		page=1, per_page=None):
	query = Server.query.filter(Server.status == status)

	if gamemode and gamemode != "all":
		query = query.filter(Server.gamemode == gamemode)

	if platform and platform != "all":
		query = query.filter(Server.platform == platform)

	if search:
		pattern = f"%{search}%"
		query = query.filter(or_(
			Server.name.ilike(pattern),
			Server.description.ilike(pattern),
			Server.address.ilike(pattern),
		))

	query = query.order_by(Server.votes.desc(), Server.created_at.asc(), Server.id.asc())

	if per_page is None:
		per_page = app.config["SERVERS_PER_PAGE"]
	return query.paginate(page=page, per_page=per_page, error_out=False)


def find_server_by_slug(slug):
	"""Finds an approved server by slug, accepting - and _ interchangeably
	and plain ids.
	"""
	if not slug or not slug.strip():
		return None

	candidates = [slug, slug.replace("-", "_"), slug.replace("_", "-")]
	for candidate in dict.fromkeys(candidates):
		server = Server.query.filter_by(slug=candidate, status="approved").first()
		if server is not None:
			return server

	if slug.isdigit():
		return Server.query.filter_by(id=int(slug), status="approved").first()

	return None


def user_servers(user_id):
	return Server.query \
		.filter_by(user_id=user_id) \
		.order_by(Server.created_at.desc()) \
		.all()


def server_counts():
	counts = {platform: 0 for platform in PLATFORMS}
	rows = db.session.query(Server.platform, db.func.count(Server.id)) \
		.filter(Server.status == "approved") \
		.group_by(Server.platform) \
		.all()
	for platform, count in rows:
		counts[platform] = count
	counts["total"] = sum(count for _, count in rows)
	return counts


def vote_window(now):
	return int((now - EPOCH) // app.config["VOTE_COOLDOWN"])


def vote_for_server(server, address, username=None, user=None, now=None,
		user_agent=None, session_id=None):
	"""Records a vote, one per voter and server in each cooldown period.

	The voter is the signed in user, or the address for anonymous votes.
	The caller commits.
	"""
	if server.status != "approved":
		raise NotFound("Server not found.")

	if user is not None and user.is_banned:
		raise PermissionDenied("Your account has been banned.")

	if now is None:
		now = datetime.utcnow()

	voter = user.id if user is not None else address

	recent = Vote.query.filter(
		Vote.server_id == server.id,
		Vote.voter == voter,
		Vote.created_at > now - app.config["VOTE_COOLDOWN"],
	).first()
	if recent is not None:
		raise VoteCooldown()

	vote = Vote(
		server_id=server.id,
		user_id=user.id if user is not None else None,
		ip_address=address,
		voter=voter,
		minecraft_username=username or None,
		vote_window=vote_window(now),
		created_at=now,
	)
	db.session.add(vote)

	# Concurrent votes in the same period collide on the unique index.
	try:
		db.session.flush()
	except IntegrityError:
		db.session.rollback()
		raise VoteCooldown()

	db.session.expire(server, ["votes"])

	record_event(server.id, "vote", address, user_agent=user_agent,
		session_id=session_id, now=now)
	maybe_schedule_rank_update(server)

	return vote


def submit_review(server, username, text, rating, address,
		user_agent=None, session_id=None):
	if server.status != "approved":
		raise NotFound("Server not found.")

	username = (username or "").strip()
	if not username:
		raise ValidationError("A Minecraft username is required.")

	text = (text or "").strip()
	if len(text) < REVIEW_MIN_LENGTH:
		raise ValidationError(f"Review must be at least {REVIEW_MIN_LENGTH} characters.")
	if len(text) > REVIEW_MAX_LENGTH:
		raise ValidationError(f"Review must be at most {REVIEW_MAX_LENGTH} characters.")

	if type(rating) is not int or not 1 <= rating <= 5:
		raise ValidationError("Rating must be a whole number from 1 to 5.")

	review = Review(
		server_id=server.id,
		minecraft_username=username,
		review_text=text,
		rating=rating,
		ip_address=address,
	)
	db.session.add(review)

	record_event(server.id, "review", address, user_agent=user_agent,
		session_id=session_id, metadata={"rating": rating})

	return review


def server_reviews(server_id, limit=10):
	return Review.query \
		.filter_by(server_id=server_id) \
		.order_by(Review.created_at.desc(), Review.id.desc()) \
		.limit(limit) \
		.all()


def review_stats(server_id):
	count, average = db.session.query(
			db.func.count(Review.id), db.func.avg(Review.rating)) \
		.filter(Review.server_id == server_id) \
		.one()
	return {
		"review_count": count,
		"average_rating": round(float(average), 1) if count else 0,
	}


def ban_user(admin, target, banned, reason=None):
	require_admin(admin)
	if target.id == admin.id:
		raise ValidationError("You cannot ban yourself.")

	target.is_banned = banned
	if banned:
		target.ban_reason = reason
		target.banned_at = datetime.utcnow()
		target.banned_by = admin.id
	else:
		target.ban_reason = None
		target.banned_at = None
		target.banned_by = None

	app.logger.info("User %s %s by %s.", target.id,
		"banned" if banned else "unbanned", admin.id)
	return target


def set_admin(admin, target, is_admin):
	require_admin(admin)
	target.is_admin = is_admin
	return target


def all_users():
	return UserProfile.query.order_by(UserProfile.created_at.desc()).all()


def month_start(now):
	return datetime(now.year, now.month, 1)


def server_statistics(admin, now=None):
	"""Server counts by status and platform for the admin dashboard."""
	require_admin(admin)
	if now is None:
		now = datetime.utcnow()

	stats = {"total": 0}
	for name in STATUSES + PLATFORMS:
		stats[name] = 0

	rows = db.session.query(Server.status, Server.platform, db.func.count(Server.id)) \
		.group_by(Server.status, Server.platform) \
		.all()
	for status, platform, count in rows:
		stats["total"] += count
		stats[status] = stats.get(status, 0) + count
		stats[platform] = stats.get(platform, 0) + count

	stats["this_month"] = Server.query \
		.filter(Server.created_at >= month_start(now)) \
		.count()
	return stats


def user_statistics(admin, now=None):
	require_admin(admin)
	if now is None:
		now = datetime.utcnow()

	total = UserProfile.query.count()
	admins = UserProfile.query.filter_by(is_admin=True).count()
	return {
		"total": total,
		"admins": admins,
		"regular": total - admins,
		"banned": UserProfile.query.filter_by(is_banned=True).count(),
		"this_month": UserProfile.query
			.filter(UserProfile.created_at >= month_start(now))
			.count(),
	}


def recent_activity(admin, limit=10):
	"""Latest submissions and votes, newest first."""
	require_admin(admin)

	servers = Server.query \
		.order_by(Server.created_at.desc(), Server.id.desc()) \
		.limit(limit) \
		.all()
	votes = Vote.query \
		.order_by(Vote.created_at.desc(), Vote.id.desc()) \
		.limit(limit) \
		.all()

	return {
		"servers": [{
			"id": server.id,
			"name": server.name,
			"status": server.status,
			"created_at": server.created_at.isoformat(),
			"owner": server.owner.username if server.owner is not None else None,
		} for server in servers],
		"votes": [{
			"id": vote.id,
			"server": vote.server.name,
			"minecraft_username": vote.minecraft_username,
			"created_at": vote.created_at.isoformat(),
		} for vote in votes],
	}


def duplicate_servers(admin):
	"""Groups servers listed more than once under the same host.

	Hosts compare case-insensitively and without a port.  Groups are
	ordered by size, largest first; servers in a group by age, oldest first.
	"""
	require_admin(admin)

	groups = {}
	for server in Server.query.order_by(Server.created_at.asc(), Server.id.asc()):
		host = server.address.split(":")[0].lower()
		groups.setdefault(host, []).append(server)

	duplicates = [(host, servers) for host, servers in groups.items() if len(servers) > 1]
	duplicates.sort(key=lambda e: len(e[1]), reverse=True)
	return duplicates


def delete_user_servers(admin, target):
	"""Deletes every server of a user.  Returns the number deleted."""
	require_admin(admin)

	servers = Server.query.filter_by(user_id=target.id).all()
	for server in servers:
		db.session.delete(server)

	app.logger.info("%d servers of user %s deleted by %s.",
		len(servers), target.id, admin.id)
	return len(servers)


def active_sponsored_servers():
	return SponsoredServer.query \
		.filter_by(is_active=True) \
		.order_by(SponsoredServer.display_order.asc(), SponsoredServer.id.asc()) \
		.all()


def all_sponsored_servers(admin):
	require_admin(admin)
	return SponsoredServer.query \
		.order_by(SponsoredServer.display_order.asc(), SponsoredServer.id.asc()) \
		.all()


# fieldName: (Required, Type)
SPONSORED_FIELDS = {
	"name": (True, str),
	"address": (True, str),
	"description": (False, str),
	"banner_url": (False, str),
	"website": (False, str),
	"display_order": (False, int),
	"is_active": (False, bool),
}


def apply_sponsored_fields(sponsored, obj, partial=False):
	for name, (required, kind) in SPONSORED_FIELDS.items():
		if name not in obj:
			if required and not partial:
				raise ValidationError(f"Required field '{name}' is missing.")
			continue
		if type(obj[name]) is not kind:
			raise ValidationError(f"Field '{name}' has incorrect type.")
		setattr(sponsored, name, obj[name])


def create_sponsored_server(admin, obj):
	require_admin(admin)
	sponsored = SponsoredServer()
	apply_sponsored_fields(sponsored, obj)
	db.session.add(sponsored)
	return sponsored


def update_sponsored_server(admin, sponsored, obj):
	require_admin(admin)
	apply_sponsored_fields(sponsored, obj, partial=True)
	return sponsored


def delete_sponsored_server(admin, sponsored):
	require_admin(admin)
	db.session.delete(sponsored)
