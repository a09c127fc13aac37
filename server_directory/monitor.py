import time
from datetime import datetime, timedelta

from .app import app, db
from .icons import update_server_icon
from .models import Server, ServerStats


def record_sample(server, result=None, response_time_ms=None):
	"""Stores a status sample and marks the server as checked."""
	now = datetime.utcnow()
	server.last_checked = now

	if result is None:
		sample = ServerStats(server_id=server.id, online=False, checked_at=now)
	else:
		sample = ServerStats(
			server_id=server.id,
			online=result.online,
			players_online=result.players_online,
			players_max=result.players_max,
			version=result.version,
			motd_clean=result.motd_clean,
			response_time_ms=response_time_ms,
			checked_at=now,
		)
	db.session.add(sample)
	return sample


def check_server(checker, server):
	"""Checks one server and stores the outcome.  Returns the status or None."""
	start = time.monotonic()
	result = checker.check(server.address, server.check_port, server.platform)
	response_time_ms = int((time.monotonic() - start) * 1000)

	if result is None:
		record_sample(server)
		server.set_offline()
		return None

	record_sample(server, result, response_time_ms)

	if result.icon:
		update_server_icon(server, result.icon)

	if result.online:
		server.set_online(result.players_online, result.players_max or 100)
	else:
		server.set_offline()

	return result


def servers_to_check(limit):
	# Servers that have gone longest without any check come first, so that
	# the whole fleet rotates through even when many servers are offline.
	return Server.query \
		.filter_by(status="approved") \
		.order_by(Server.last_checked.asc().nulls_first(), Server.id.asc()) \
		.limit(limit) \
		.all()


def scan_servers(checker, delay=None, sleep=time.sleep, limit=None):
	"""Checks the status of approved servers, one after another.

	A failing server is marked offline and does not stop the scan.
	Returns a list of per-server results.
	"""
	if not app.config["MONITORING_ENABLED"]:
		app.logger.warning("Database not configured, skipping server monitoring.")
		return []

	if delay is None:
		delay = app.config["SCAN_DELAY"]
	if limit is None:
		limit = app.config["SCAN_LIMIT"]

	servers = servers_to_check(limit)
	if not servers:
		app.logger.info("No servers to monitor.")
		return []

	app.logger.info("Monitoring %d servers.", len(servers))

	results = []
	for i, server in enumerate(servers):
		if i > 0 and delay:
			sleep(delay)

		server_id = server.id
		address = server.address
		try:
			result = check_server(checker, server)
			db.session.commit()
		except Exception:
			app.logger.exception("Error checking server %s.", address)
			db.session.rollback()
			mark_failed(server_id)
			results.append({"server": address, "status": "error", "online": False})
			continue

		if result is None:
			app.logger.warning("Failed to check server %s.", address)
			results.append({"server": address, "status": "failed", "online": False})
		else:
			app.logger.info("Server %s: %s (%d/%d)", address,
				"online" if result.online else "offline",
				result.players_online, result.players_max)
			results.append({"server": address, "status": "checked", "online": result.online})

	app.logger.info("Server monitoring completed.")
	return results


def mark_failed(server_id):
	try:
		server = db.session.get(Server, server_id)
		if server is None:
			return
		record_sample(server)
		server.set_offline()
		db.session.commit()
	except Exception:
		app.logger.exception("Failed to mark server %d offline.", server_id)
		db.session.rollback()


def latest_stats(server_id):
	return ServerStats.query \
		.filter_by(server_id=server_id) \
		.order_by(ServerStats.checked_at.desc(), ServerStats.id.desc()) \
		.first()


def stats_history(server_id, hours=24, now=None):
	if now is None:
		now = datetime.utcnow()
	return ServerStats.query \
		.filter(ServerStats.server_id == server_id,
			ServerStats.checked_at >= now - timedelta(hours=hours)) \
		.order_by(ServerStats.checked_at.desc()) \
		.all()


def uptime_percentage(server_id, hours=24, now=None):
	"""Share of checks in the period that found the server online, 0-100."""
	if now is None:
		now = datetime.utcnow()
	total, online = db.session.query(
			db.func.count(ServerStats.id),
			db.func.sum(db.case((ServerStats.online, 1), else_=0)),
		) \
		.filter(ServerStats.server_id == server_id,
			ServerStats.checked_at >= now - timedelta(hours=hours)) \
		.one()

	if not total:
		return 0.0
	return round(online / total * 100, 2)


def daily_uptime(server_id, days=30, now=None):
	if now is None:
		now = datetime.utcnow()
	start = datetime.combine(now.date() - timedelta(days=days), datetime.min.time())

	day = db.func.date(ServerStats.checked_at).label("day")
	rows = db.session.query(
			day,
			db.func.count(ServerStats.id),
			db.func.sum(db.case((ServerStats.online, 1), else_=0)),
		) \
		.filter(ServerStats.server_id == server_id, ServerStats.checked_at >= start) \
		.group_by(day) \
		.order_by(day.desc()) \
		.all()

	return [{
		"date": str(date),
		"uptime_percentage": round(online / total * 100, 2),
		"total_checks": total,
		"online_checks": online,
	} for date, total, online in rows]


def cleanup_old_stats(now=None):
	if now is None:
		now = datetime.utcnow()
	cutoff = now - app.config["STATS_RETENTION"]
	count = ServerStats.query \
		.filter(ServerStats.checked_at < cutoff) \
		.delete(synchronize_session=False)
	db.session.commit()
	return count
