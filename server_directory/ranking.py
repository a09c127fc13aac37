"""Server rankings and their daily and hourly snapshots.

The rank of an approved server is its position when all approved servers
are ordered by votes (most first), then creation time (oldest first), then
id.  Snapshots are only ever written by `update_ranks`; the vote path asks
for a recomputation through `maybe_schedule_rank_update` instead of writing
snapshots itself.
"""
from datetime import datetime, timedelta

from sqlalchemy import and_, or_

from .app import app, db
from .cache import StatusCache
from .models import DailyRankSnapshot, HourlyRankSnapshot, Server
from .util import upsert_stmt


CADENCES = ("daily", "hourly")

RANK_ORDER = (Server.votes.desc(), Server.created_at.asc(), Server.id.asc())

# Marks a queued vote-triggered update until its countdown has passed, so a
# burst of votes queues a single recomputation per process.
pending_updates = StatusCache(app.config["RANK_UPDATE_COUNTDOWN"])


def current_ranks():
	"""Returns (server_id, rank_position, votes) for all approved servers, best first."""
	rank = db.func.row_number().over(order_by=RANK_ORDER).label("rank_position")
	rows = db.session.query(Server.id, rank, Server.votes) \
		.filter(Server.status == "approved") \
		.order_by(*RANK_ORDER) \
		.all()
	return [(row.id, row.rank_position, row.votes) for row in rows]


def get_server_rank(server):
	"""Current rank of a server, or None if it is not approved."""
	if server.status != "approved":
		return None

	ahead = Server.query.filter(
		Server.status == "approved",
		or_(
			Server.votes > server.votes,
			and_(Server.votes == server.votes, Server.created_at < server.created_at),
			and_(Server.votes == server.votes, Server.created_at == server.created_at,
				Server.id < server.id),
		)
	).count()

	return ahead + 1


def update_ranks(cadence, now=None):
	"""Computes the current ranking and stores it as a snapshot.

	Daily snapshots are upserted per server and date; a stored snapshot is
	only replaced by a computation that is at least as recent, so a delayed
	run cannot overwrite fresher data.  Hourly snapshots are appended for
	the timestamp.  Rows outside the retention window are removed.

	Returns the number of ranked servers.
	"""
	if cadence not in CADENCES:
		raise ValueError(f"Unknown rank cadence {cadence!r}")

	if not app.config["MONITORING_ENABLED"]:
		app.logger.warning("Database not configured, skipping %s rank update.", cadence)
		return 0

	if now is None:
		now = datetime.utcnow()

	ranks = current_ranks()

	if cadence == "daily":
		today = now.date()
		if ranks:
			stmt = upsert_stmt(DailyRankSnapshot, [{
					"server_id": server_id,
					"date": today,
					"rank_position": position,
					"total_votes": votes,
					"computed_at": now,
				} for server_id, position, votes in ranks])
			stmt = stmt.on_conflict_do_update(
				index_elements=["server_id", "date"],
				set_={
					"rank_position": stmt.excluded.rank_position,
					"total_votes": stmt.excluded.total_votes,
					"computed_at": stmt.excluded.computed_at,
				},
				where=DailyRankSnapshot.computed_at <= stmt.excluded.computed_at,
			)
			db.session.execute(stmt)

		cutoff = today - app.config["DAILY_RANK_RETENTION"]
		DailyRankSnapshot.query \
			.filter(DailyRankSnapshot.date < cutoff) \
			.delete(synchronize_session=False)
	else:
		if ranks:
			stmt = upsert_stmt(HourlyRankSnapshot, [{
					"server_id": server_id,
					"recorded_at": now,
					"rank_position": position,
					"total_votes": votes,
				} for server_id, position, votes in ranks])
			stmt = stmt.on_conflict_do_nothing(index_elements=["server_id", "recorded_at"])
			db.session.execute(stmt)

		cutoff = now - app.config["HOURLY_RANK_RETENTION"]
		HourlyRankSnapshot.query \
			.filter(HourlyRankSnapshot.recorded_at < cutoff) \
			.delete(synchronize_session=False)

	db.session.commit()

	app.logger.info("Stored %s rank snapshot for %d servers.", cadence, len(ranks))
	return len(ranks)


def maybe_schedule_rank_update(server):
	"""Queues a daily rank update if the server's votes moved far enough.

	The vote count is compared to the server's most recent daily snapshot.
	While an update is already queued no further one is added.  Returns True
	if an update was queued.
	"""
	latest = DailyRankSnapshot.query \
		.filter_by(server_id=server.id) \
		.order_by(DailyRankSnapshot.date.desc()) \
		.first()
	baseline = latest.total_votes if latest is not None else 0

	if abs(server.votes - baseline) < app.config["RANK_VOTE_DELTA"]:
		return False

	if pending_updates.get("daily") is not None:
		return False

	from .tasks import update_ranks_task
	update_ranks_task.apply_async(("daily",),
		countdown=app.config["RANK_UPDATE_COUNTDOWN"])
	pending_updates.put("daily", True)
	return True


def rank_history_daily(server_id, days=30, today=None):
	if today is None:
		today = datetime.utcnow().date()
	return DailyRankSnapshot.query \
		.filter(DailyRankSnapshot.server_id == server_id,
			DailyRankSnapshot.date >= today - timedelta(days=days)) \
		.order_by(DailyRankSnapshot.date.asc()) \
		.all()


def rank_history_hourly(server_id, hours=168, now=None):
	if now is None:
		now = datetime.utcnow()
	return HourlyRankSnapshot.query \
		.filter(HourlyRankSnapshot.server_id == server_id,
			HourlyRankSnapshot.recorded_at >= now - timedelta(hours=hours)) \
		.order_by(HourlyRankSnapshot.recorded_at.desc()) \
		.all()


def daily_rank_averages(server_id, days=7, now=None):
	"""Average, best and worst hourly rank per day."""
	if now is None:
		now = datetime.utcnow()
	start = datetime.combine(now.date() - timedelta(days=days), datetime.min.time())

	day = db.func.date(HourlyRankSnapshot.recorded_at).label("day")
	rows = db.session.query(
			day,
			db.func.avg(HourlyRankSnapshot.rank_position),
			db.func.min(HourlyRankSnapshot.rank_position),
			db.func.max(HourlyRankSnapshot.rank_position),
			db.func.count(HourlyRankSnapshot.id),
		) \
		.filter(HourlyRankSnapshot.server_id == server_id,
			HourlyRankSnapshot.recorded_at >= start) \
		.group_by(day) \
		.order_by(day) \
		.all()

	return [{
		"date": str(date),
		"avg_rank_position": round(float(avg), 1),
		"min_rank_position": best,
		"max_rank_position": worst,
		"total_snapshots": count,
	} for date, avg, best, worst, count in rows]
