import hashlib
import secrets
from datetime import datetime, timedelta

from .app import app, db
from .models import EVENT_TYPES, AnalyticsEvent, DailyAnalytics, Server
from .util import upsert_stmt


# Event type -> daily counter column
COUNTERS = {
	"impression": "impressions",
	"click": "clicks",
	"ip_copy": "ip_copies",
	"vote": "votes",
	"review": "reviews",
}

# Share of address copies assumed to turn into a player joining
JOIN_RATE = 0.5


def hash_ip(address):
	"""Salted, truncated hash of a visitor address."""
	salted = address + app.config["ANALYTICS_SALT"]
	return hashlib.sha256(salted.encode("utf-8")).hexdigest()[:16]


def new_session_id():
	return "session_" + secrets.token_urlsafe(12)


def record_event(server_id, event_type, address, user_agent=None, referrer=None,
		session_id=None, metadata=None, now=None):
	"""Appends an analytics event and counts it in the daily aggregate.

	The caller commits the session.
	"""
	if event_type not in EVENT_TYPES:
		raise ValueError(f"Unknown analytics event type {event_type!r}")

	if now is None:
		now = datetime.utcnow()
	day = now.date()
	ip_hash = hash_ip(address)

	start = datetime.combine(day, datetime.min.time())
	seen_today = db.session.query(AnalyticsEvent.id).filter(
		AnalyticsEvent.server_id == server_id,
		AnalyticsEvent.user_ip_hash == ip_hash,
		AnalyticsEvent.created_at >= start,
		AnalyticsEvent.created_at < start + timedelta(days=1),
	).first() is not None

	event = AnalyticsEvent(
		server_id=server_id,
		event_type=event_type,
		user_ip_hash=ip_hash,
		user_agent=user_agent,
		referrer=referrer or None,
		session_id=session_id,
		meta=metadata or {},
		created_at=now,
	)
	db.session.add(event)

	values = {"server_id": server_id, "date": day, "updated_at": now,
		"unique_visitors": 0 if seen_today else 1}
	for name in COUNTERS.values():
		values[name] = 0
	values[COUNTERS[event_type]] = 1

	daily = DailyAnalytics.__table__
	stmt = upsert_stmt(DailyAnalytics, values)
	stmt = stmt.on_conflict_do_update(
		index_elements=["server_id", "date"],
		set_={
			COUNTERS[event_type]: daily.c[COUNTERS[event_type]] + 1,
			"unique_visitors": daily.c.unique_visitors + stmt.excluded.unique_visitors,
			"updated_at": stmt.excluded.updated_at,
		},
	)
	db.session.execute(stmt)

	return event


def summary_start(today):
	"""First day of the reporting period: the start of the month, or
	30 days back if that is earlier.
	"""
	return min(today.replace(day=1), today - timedelta(days=30))


def server_summary(server_id, today=None):
	if today is None:
		today = datetime.utcnow().date()

	days = DailyAnalytics.query \
		.filter(DailyAnalytics.server_id == server_id,
			DailyAnalytics.date >= summary_start(today)) \
		.order_by(DailyAnalytics.date.asc()) \
		.all()

	totals = {name: 0 for name in COUNTERS.values()}
	for day in days:
		for name in totals:
			totals[name] += getattr(day, name) or 0

	impressions = totals["impressions"]
	if impressions > 0:
		ctr = totals["clicks"] / impressions * 100
		conversion = totals["ip_copies"] / impressions * 100
	else:
		ctr = conversion = 0

	return {
		"total_impressions": impressions,
		"total_clicks": totals["clicks"],
		"total_ip_copies": totals["ip_copies"],
		"total_votes": totals["votes"],
		"total_reviews": totals["reviews"],
		"avg_ctr": round(ctr, 2),
		"avg_conversion_rate": round(conversion, 2),
		"estimated_joins": int(totals["ip_copies"] * JOIN_RATE + 0.5),
		"daily_data": [day.as_json() for day in days],
	}


def user_servers_summary(user_id, today=None):
	servers = Server.query.filter_by(user_id=user_id).all()
	return {server.id: server_summary(server.id, today) for server in servers}


def today_analytics(server_id, today=None):
	if today is None:
		today = datetime.utcnow().date()
	return DailyAnalytics.query.filter_by(server_id=server_id, date=today).one_or_none()


def cleanup_old_analytics(now=None):
	"""Deletes old events and daily aggregates.  Returns (events, days) deleted."""
	if now is None:
		now = datetime.utcnow()

	events = AnalyticsEvent.query \
		.filter(AnalyticsEvent.created_at < now - app.config["ANALYTICS_EVENT_RETENTION"]) \
		.delete(synchronize_session=False)

	cutoff = now.date() - app.config["ANALYTICS_DAILY_RETENTION"]
	days = DailyAnalytics.query \
		.filter(DailyAnalytics.date < cutoff) \
		.delete(synchronize_session=False)

	db.session.commit()
	return events, days
