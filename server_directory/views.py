from flask import jsonify, make_response, request

from . import analytics, listings, monitor, ranking
from .app import app, db
from .errors import ListingError, NotFound, PermissionDenied, ValidationError
from .icons import get_server_icon
from .models import EVENT_TYPES, PLATFORMS, STATUSES, Server, SponsoredServer, UserProfile
from .tasks import checker
from .util import normalize_ip


@app.errorhandler(ListingError)
def listing_error(e):
	return jsonify(error=str(e)), e.status_code


def current_user():
	user_id = request.headers.get(app.config["AUTH_USER_HEADER"])
	if not user_id:
		return None
	return db.session.get(UserProfile, user_id)


def client_ip():
	return normalize_ip(request.remote_addr)


def request_json():
	obj = request.get_json(silent=True)
	if not isinstance(obj, dict):
		raise ValidationError("JSON data is not an object.")
	return obj


def get_server(server_id, user=None):
	"""Loads a server that the user may see.  Unapproved servers are only
	visible to their owner and administrators.
	"""
	server = db.session.get(Server, server_id)
	if server is None:
		raise NotFound("Server not found.")
	if server.status != "approved":
		if user is None or (user.id != server.user_id and not user.is_admin):
			raise NotFound("Server not found.")
	return server


def analytics_session():
	return request.cookies.get(app.config["ANALYTICS_SESSION_COOKIE"]) \
		or analytics.new_session_id()


def with_session_cookie(resp, session_id):
	resp.set_cookie(app.config["ANALYTICS_SESSION_COOKIE"], session_id,
		max_age=365 * 86400, samesite="Lax")
	return resp


def server_details(server):
	obj = server.as_json()
	obj.update(listings.review_stats(server.id))
	obj["rank"] = ranking.get_server_rank(server)
	obj["uptime"] = monitor.uptime_percentage(server.id)
	return obj


@app.route("/api/servers")
def server_list():
	user = current_user()

	status = request.args.get("status", "approved")
	if status not in STATUSES:
		raise ValidationError("Invalid status filter.")
	if status != "approved" and (user is None or not user.is_admin):
		raise PermissionDenied()

	platform = request.args.get("platform")
	if platform and platform != "all" and platform not in PLATFORMS:
		raise ValidationError("Invalid platform filter.")

	page = listings.list_servers(
		gamemode=request.args.get("gamemode"),
		platform=platform,
		search=request.args.get("search"),
		status=status,
		page=request.args.get("page", 1, type=int),
	)

	return {
		"servers": [s.as_json() for s in page.items],
		"total": page.total,
		"pages": page.pages,
		"page": page.page,
	}


@app.route("/api/servers/counts")
def server_counts():
	return listings.server_counts()


@app.route("/api/servers/<slug>")
def server_by_slug(slug):
	server = listings.find_server_by_slug(slug)
	if server is None:
		raise NotFound("Server not found.")
	return server_details(server)


@app.route("/api/servers/<int:server_id>/icon")
def server_icon(server_id):
	server = get_server(server_id, current_user())
	data = get_server_icon(server.id)
	if data is None:
		raise NotFound("Server has no icon.")

	resp = make_response({"icon": data})
	resp.cache_control.max_age = 15 * 60
	resp.cache_control.public = True
	return resp


@app.route("/api/servers", methods=["POST"])
def submit_server():
	server = listings.create_server(current_user(), request_json())
	db.session.commit()
	return server.as_json(), 201


@app.route("/api/servers/<int:server_id>", methods=["PATCH"])
def edit_server(server_id):
	user = current_user()
	server = get_server(server_id, user)
	listings.update_server(user, server, request_json())
	db.session.commit()
	return server.as_json()


@app.route("/api/servers/<int:server_id>", methods=["DELETE"])
def remove_server(server_id):
	user = current_user()
	server = get_server(server_id, user)
	listings.delete_server(user, server)
	db.session.commit()
	return "", 204


@app.route("/api/my-servers")
def my_servers():
	user = current_user()
	listings.require_user(user)
	return {"servers": [s.as_json() for s in listings.user_servers(user.id)]}


@app.route("/api/my-servers/analytics")
def my_servers_analytics():
	user = current_user()
	listings.require_user(user)
	summaries = analytics.user_servers_summary(user.id)
	return {"servers": {str(k): v for k, v in summaries.items()}}


@app.route("/api/servers/<int:server_id>/vote", methods=["POST"])
def vote(server_id):
	user = current_user()
	server = get_server(server_id)
	obj = request.get_json(silent=True) or {}
	session_id = analytics_session()

	listings.vote_for_server(server, client_ip(),
		username=obj.get("minecraft_username"),
		user=user,
		user_agent=request.user_agent.string,
		session_id=session_id)
	db.session.commit()

	resp = make_response({"votes": server.votes}, 201)
	return with_session_cookie(resp, session_id)


@app.route("/api/servers/<int:server_id>/reviews")
def reviews(server_id):
	server = get_server(server_id)
	limit = min(request.args.get("limit", 10, type=int), 100)
	obj = listings.review_stats(server.id)
	obj["reviews"] = [r.as_json() for r in listings.server_reviews(server.id, limit)]
	return obj


@app.route("/api/servers/<int:server_id>/reviews", methods=["POST"])
def submit_review(server_id):
	server = get_server(server_id)
	obj = request_json()
	session_id = analytics_session()

	review = listings.submit_review(server,
		obj.get("minecraft_username"),
		obj.get("review_text"),
		obj.get("rating"),
		client_ip(),
		user_agent=request.user_agent.string,
		session_id=session_id)
	db.session.commit()

	resp = make_response(review.as_json(), 201)
	return with_session_cookie(resp, session_id)


@app.route("/api/servers/<int:server_id>/events", methods=["POST"])
def track_event(server_id):
	server = get_server(server_id)
	obj = request_json()

	event_type = obj.get("event_type")
	# Votes and reviews are tracked when they are submitted
	if event_type not in EVENT_TYPES or event_type in ("vote", "review"):
		raise ValidationError("Invalid event type.")

	metadata = obj.get("metadata") or {}
	if not isinstance(metadata, dict):
		raise ValidationError("Field 'metadata' must be an object.")

	session_id = analytics_session()
	analytics.record_event(server.id, event_type, client_ip(),
		user_agent=request.user_agent.string,
		referrer=request.referrer,
		session_id=session_id,
		metadata=metadata)
	db.session.commit()

	return with_session_cookie(make_response("", 204), session_id)


@app.route("/api/servers/<int:server_id>/analytics")
def server_analytics(server_id):
	user = current_user()
	server = get_server(server_id, user)
	listings.require_owner(user, server)

	obj = analytics.server_summary(server.id)
	today = analytics.today_analytics(server.id)
	obj["today"] = today.as_json() if today is not None else None
	return obj


@app.route("/api/servers/<int:server_id>/stats")
def server_stats(server_id):
	server = get_server(server_id, current_user())
	hours = min(request.args.get("hours", 24, type=int), 24 * 90)

	latest = monitor.latest_stats(server.id)
	return {
		"latest": latest.as_json() if latest is not None else None,
		"history": [s.as_json() for s in monitor.stats_history(server.id, hours)],
		"uptime": monitor.uptime_percentage(server.id, hours),
		"daily_uptime": monitor.daily_uptime(server.id),
	}


@app.route("/api/servers/<int:server_id>/ranks")
def server_ranks(server_id):
	server = get_server(server_id, current_user())
	days = min(request.args.get("days", 30, type=int), 90)

	return {
		"rank": ranking.get_server_rank(server),
		"daily": [r.as_json() for r in ranking.rank_history_daily(server.id, days)],
		"hourly": [r.as_json() for r in ranking.rank_history_hourly(server.id)],
		"daily_averages": ranking.daily_rank_averages(server.id),
	}


@app.route("/api/status")
def status():
	address = request.args.get("address")
	if not address:
		raise ValidationError("Parameter 'address' is required.")

	platform = request.args.get("platform", "java")
	if platform not in PLATFORMS:
		raise ValidationError("Invalid platform.")

	port = request.args.get("port", 19132 if platform == "bedrock" else 25565, type=int)

	result = checker.check(address, port, platform)
	if result is None:
		return {"online": None}

	return {
		"online": result.online,
		"players_online": result.players_online,
		"players_max": result.players_max,
		"version": result.version,
		"motd": result.motd,
		"hostname": result.hostname,
	}


@app.route("/api/admin/servers/<int:server_id>/status", methods=["POST"])
def moderate_server(server_id):
	user = current_user()
	listings.require_admin(user)
	server = get_server(server_id, user)

	status = request_json().get("status")
	if status not in STATUSES:
		raise ValidationError("Invalid status.")

	listings.set_server_status(user, server, status)
	db.session.commit()
	return server.as_json()


@app.route("/api/admin/users")
def admin_users():
	listings.require_admin(current_user())
	return {"users": [u.as_json() for u in listings.all_users()]}


def get_user_or_404(user_id):
	target = db.session.get(UserProfile, user_id)
	if target is None:
		raise NotFound("User not found.")
	return target


@app.route("/api/admin/users/<user_id>/ban", methods=["POST"])
def ban_user(user_id):
	user = current_user()
	listings.require_admin(user)
	obj = request_json()

	banned = obj.get("banned", True)
	if not isinstance(banned, bool):
		raise ValidationError("Field 'banned' must be a boolean.")

	target = listings.ban_user(user, get_user_or_404(user_id), banned, obj.get("reason"))
	db.session.commit()
	return target.as_json()


@app.route("/api/admin/users/<user_id>/admin", methods=["POST"])
def promote_user(user_id):
	user = current_user()
	listings.require_admin(user)
	is_admin = request_json().get("is_admin")
	if not isinstance(is_admin, bool):
		raise ValidationError("Field 'is_admin' must be a boolean.")

	target = listings.set_admin(user, get_user_or_404(user_id), is_admin)
	db.session.commit()
	return target.as_json()


@app.route("/api/admin/users/<user_id>/servers", methods=["DELETE"])
def delete_user_servers(user_id):
	user = current_user()
	listings.require_admin(user)
	count = listings.delete_user_servers(user, get_user_or_404(user_id))
	db.session.commit()
	return {"deleted": count}


@app.route("/api/admin/stats")
def admin_stats():
	user = current_user()
	return {
		"servers": listings.server_statistics(user),
		"users": listings.user_statistics(user),
	}


@app.route("/api/admin/activity")
def admin_activity():
	limit = min(request.args.get("limit", 10, type=int), 100)
	return listings.recent_activity(current_user(), limit)


@app.route("/api/admin/duplicates")
def admin_duplicates():
	groups = listings.duplicate_servers(current_user())
	return {"duplicates": [{
		"domain": host,
		"servers": [s.as_json() for s in servers],
	} for host, servers in groups]}


@app.route("/api/sponsored")
def sponsored_servers():
	resp = make_response({
		"servers": [s.as_json() for s in listings.active_sponsored_servers()],
	})
	resp.cache_control.max_age = 5 * 60
	return resp


@app.route("/api/admin/sponsored")
def admin_sponsored_servers():
	servers = listings.all_sponsored_servers(current_user())
	return {"servers": [s.as_json() for s in servers]}


@app.route("/api/admin/sponsored", methods=["POST"])
def create_sponsored_server():
	sponsored = listings.create_sponsored_server(current_user(), request_json())
	db.session.commit()
	return sponsored.as_json(), 201


def get_sponsored_or_404(sponsored_id):
	sponsored = db.session.get(SponsoredServer, sponsored_id)
	if sponsored is None:
		raise NotFound("Sponsored server not found.")
	return sponsored


@app.route("/api/admin/sponsored/<int:sponsored_id>", methods=["PATCH"])
def update_sponsored_server(sponsored_id):
	user = current_user()
	listings.require_admin(user)
	sponsored = listings.update_sponsored_server(user,
		get_sponsored_or_404(sponsored_id), request_json())
	db.session.commit()
	return sponsored.as_json()


@app.route("/api/admin/sponsored/<int:sponsored_id>", methods=["DELETE"])
def delete_sponsored_server(sponsored_id):
	user = current_user()
	listings.require_admin(user)
	listings.delete_sponsored_server(user, get_sponsored_or_404(sponsored_id))
	db.session.commit()
	return "", 204
