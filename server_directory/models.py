from datetime import datetime

from sqlalchemy import event

from .app import db


PLATFORMS = ("java", "bedrock", "crossplatform")

STATUSES = ("pending", "approved", "rejected")

# Allowed moderation status changes, from -> {to}
STATUS_TRANSITIONS = {
	"pending": {"approved", "rejected"},
	"approved": {"rejected"},
	"rejected": {"approved"},
}

EVENT_TYPES = ("impression", "click", "ip_copy", "vote", "review")

DEFAULT_PORTS = {
	"java": 25565,
	"bedrock": 19132,
}


class UserProfile(db.Model):
	# Id assigned by the authentication provider
	id = db.Column(db.String(64), primary_key=True)

	username = db.Column(db.String, nullable=False, unique=True)
	email = db.Column(db.String, nullable=False, unique=True)
	avatar_url = db.Column(db.String, nullable=True)

	is_admin = db.Column(db.Boolean, nullable=False, default=False)

	is_banned = db.Column(db.Boolean, nullable=False, default=False)
	ban_reason = db.Column(db.String, nullable=True)
	banned_at = db.Column(db.DateTime, nullable=True)
	banned_by = db.Column(db.String(64), nullable=True)

	created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
	updated_at = db.Column(db.DateTime, default=datetime.utcnow,
			onupdate=datetime.utcnow, nullable=False)

	servers = db.relationship("Server", back_populates="owner",
			cascade="all, delete-orphan")

	def as_json(self):
		return {
			"id": self.id,
			"username": self.username,
			"avatar_url": self.avatar_url,
			"is_admin": self.is_admin,
			"is_banned": self.is_banned,
			"ban_reason": self.ban_reason,
			"created_at": self.created_at.isoformat(),
		}


class Server(db.Model):
	__table_args__ = (
		db.Index("ix_server_status_votes", "status", "votes"),
	)

	id = db.Column(db.Integer, primary_key=True)

	name = db.Column(db.String, nullable=False)
	slug = db.Column(db.String, nullable=False, unique=True)

	# Connection address and the ports for each client family
	address = db.Column(db.String, nullable=False)
	java_port = db.Column(db.Integer, nullable=False, default=25565)
	bedrock_port = db.Column(db.Integer, nullable=True)
	query_port = db.Column(db.Integer, nullable=True)

	# "java", "bedrock" or "crossplatform"
	platform = db.Column(db.String(16), nullable=False, default="java")

	gamemode = db.Column(db.String, nullable=False, index=True)
	# Comma separated list of further game modes
	additional_gamemodes = db.Column(db.String, nullable=True)

	min_version = db.Column(db.String, nullable=False, default="1.7")
	max_version = db.Column(db.String, nullable=False, default="1.21")

	country = db.Column(db.String, nullable=False, default="Worldwide")

	website = db.Column(db.String, nullable=True)
	discord = db.Column(db.String, nullable=True)
	youtube = db.Column(db.String, nullable=True)
	banner_url = db.Column(db.String, nullable=True)

	description = db.Column(db.Text, nullable=False)

	has_whitelist = db.Column(db.Boolean, nullable=False, default=False)

	# "pending", "approved" or "rejected"
	status = db.Column(db.String(16), nullable=False, default="pending", index=True)

	featured = db.Column(db.Boolean, nullable=False, default=False)

	# Number of vote rows, kept in sync by the vote mapper events below
	votes = db.Column(db.Integer, nullable=False, default=0)

	# Live status from the most recent check
	online = db.Column(db.Boolean, nullable=False, default=False)
	players_online = db.Column(db.Integer, nullable=False, default=0)
	players_max = db.Column(db.Integer, nullable=False, default=0)
	# Time of the most recent successful check, None when offline
	last_ping = db.Column(db.DateTime, nullable=True)
	# Time of the most recent check attempt, whatever its outcome
	last_checked = db.Column(db.DateTime, nullable=True, index=True)

	created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
	updated_at = db.Column(db.DateTime, default=datetime.utcnow,
			onupdate=datetime.utcnow, nullable=False)

	user_id = db.Column(db.String(64),
			db.ForeignKey("user_profile.id", ondelete="CASCADE"), nullable=False)

	owner = db.relationship("UserProfile", back_populates="servers")

	vote_rows = db.relationship("Vote", back_populates="server",
			cascade="all, delete-orphan")
	reviews = db.relationship("Review", back_populates="server",
			cascade="all, delete-orphan")
	stats = db.relationship("ServerStats", back_populates="server",
			cascade="all, delete-orphan")
	icon = db.relationship("ServerIcon", back_populates="server", uselist=False,
			cascade="all, delete-orphan")
	daily_ranks = db.relationship("DailyRankSnapshot",
			cascade="all, delete-orphan")
	hourly_ranks = db.relationship("HourlyRankSnapshot",
			cascade="all, delete-orphan")
	analytics_events = db.relationship("AnalyticsEvent",
			cascade="all, delete-orphan")
	analytics_daily = db.relationship("DailyAnalytics",
			cascade="all, delete-orphan")

	@property
	def check_port(self):
		"""Port to query for the server's primary client family."""
		if self.platform == "bedrock":
			return self.bedrock_port or DEFAULT_PORTS["bedrock"]
		return self.java_port

	def as_json(self):
		obj = {
			"id": self.id,
			"name": self.name,
			"slug": self.slug,
			"address": self.address,
			"java_port": self.java_port,
			"platform": self.platform,
			"gamemode": self.gamemode,
			"additional_gamemodes": self.additional_gamemodes.split(",")
				if self.additional_gamemodes else [],
			"min_version": self.min_version,
			"max_version": self.max_version,
			"country": self.country,
			"description": self.description,
			"has_whitelist": self.has_whitelist,
			"status": self.status,
			"featured": self.featured,
			"votes": self.votes,
			"online": self.online,
			"players_online": self.players_online,
			"players_max": self.players_max,
			"created_at": self.created_at.isoformat(),
		}

		# Optional fields
		if self.bedrock_port is not None:
			obj["bedrock_port"] = self.bedrock_port
		if self.query_port is not None:
			obj["query_port"] = self.query_port
		if self.website is not None:
			obj["website"] = self.website
		if self.discord is not None:
			obj["discord"] = self.discord
		if self.youtube is not None:
			obj["youtube"] = self.youtube
		if self.banner_url is not None:
			obj["banner_url"] = self.banner_url
		if self.last_ping is not None:
			obj["last_ping"] = self.last_ping.isoformat()
		if self.last_checked is not None:
			obj["last_checked"] = self.last_checked.isoformat()

		return obj

	def set_online(self, players_online, players_max):
		self.online = True
		self.players_online = players_online
		self.players_max = players_max
		self.last_ping = datetime.utcnow()

	def set_offline(self):
		# Stale data is worse than no data.
		self.online = False
		self.players_online = 0
		self.players_max = 0
		self.last_ping = None


class ServerStats(db.Model):
	"""
	One status check result for a server.
	"""
	__table_args__ = (
		db.Index("ix_server_stats_server_checked", "server_id", "checked_at"),
	)

	id = db.Column(db.Integer, primary_key=True)

	server_id = db.Column(db.Integer,
			db.ForeignKey("server.id", ondelete="CASCADE"), nullable=False)

	online = db.Column(db.Boolean, nullable=False, default=False)
	players_online = db.Column(db.Integer, nullable=False, default=0)
	players_max = db.Column(db.Integer, nullable=False, default=0)
	version = db.Column(db.String, nullable=True)
	motd_clean = db.Column(db.String, nullable=True)
	response_time_ms = db.Column(db.Integer, nullable=True)

	checked_at = db.Column(db.DateTime, default=datetime.utcnow,
			nullable=False, index=True)

	server = db.relationship("Server", back_populates="stats")

	def as_json(self):
		return {
			"online": self.online,
			"players_online": self.players_online,
			"players_max": self.players_max,
			"version": self.version,
			"motd_clean": self.motd_clean,
			"response_time_ms": self.response_time_ms,
			"checked_at": self.checked_at.isoformat(),
		}


class ServerIcon(db.Model):
	id = db.Column(db.Integer, primary_key=True)

	server_id = db.Column(db.Integer,
			db.ForeignKey("server.id", ondelete="CASCADE"),
			nullable=False, unique=True)

	# Base64 image data without a data URI header
	icon_data = db.Column(db.Text, nullable=True)
	# SHA-256 of icon_data
	icon_hash = db.Column(db.String(64), nullable=True, index=True)

	last_updated = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

	server = db.relationship("Server", back_populates="icon")


class DailyRankSnapshot(db.Model):
	__table_args__ = (
		db.UniqueConstraint("server_id", "date", name="uq_daily_rank_server_date"),
	)

	id = db.Column(db.Integer, primary_key=True)

	server_id = db.Column(db.Integer,
			db.ForeignKey("server.id", ondelete="CASCADE"), nullable=False)
	date = db.Column(db.Date, nullable=False, index=True)

	rank_position = db.Column(db.Integer, nullable=False)
	total_votes = db.Column(db.Integer, nullable=False, default=0)

	# Time the ranking was computed.  A snapshot is only replaced by a
	# computation that is at least as recent.
	computed_at = db.Column(db.DateTime, nullable=False)

	def as_json(self):
		return {
			"date": self.date.isoformat(),
			"rank_position": self.rank_position,
			"total_votes": self.total_votes,
		}


class HourlyRankSnapshot(db.Model):
	__table_args__ = (
		db.UniqueConstraint("server_id", "recorded_at",
				name="uq_hourly_rank_server_recorded"),
	)

	id = db.Column(db.Integer, primary_key=True)

	server_id = db.Column(db.Integer,
			db.ForeignKey("server.id", ondelete="CASCADE"), nullable=False)
	recorded_at = db.Column(db.DateTime, nullable=False, index=True)

	rank_position = db.Column(db.Integer, nullable=False)
	total_votes = db.Column(db.Integer, nullable=False, default=0)

	def as_json(self):
		return {
			"recorded_at": self.recorded_at.isoformat(),
			"rank_position": self.rank_position,
			"total_votes": self.total_votes,
		}


class Vote(db.Model):
	__table_args__ = (
		# At most one vote per voter and server in each cooldown bucket.
		db.UniqueConstraint("server_id", "voter", "vote_window",
				name="uq_vote_server_voter_window"),
		db.Index("ix_vote_server_voter_created", "server_id", "voter", "created_at"),
	)

	id = db.Column(db.Integer, primary_key=True)

	server_id = db.Column(db.Integer,
			db.ForeignKey("server.id", ondelete="CASCADE"), nullable=False)
	user_id = db.Column(db.String(64),
			db.ForeignKey("user_profile.id", ondelete="SET NULL"), nullable=True)
	ip_address = db.Column(db.String, nullable=False)

	# Voter identity: the user id when signed in, otherwise the address
	voter = db.Column(db.String, nullable=False)

	minecraft_username = db.Column(db.String, nullable=True)

	# Number of the cooldown period the vote was cast in
	vote_window = db.Column(db.Integer, nullable=False)

	created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

	server = db.relationship("Server", back_populates="vote_rows")


@event.listens_for(Vote, "after_insert")
def _increment_vote_count(mapper, connection, target):
	server = Server.__table__
	connection.execute(server.update()
			.where(server.c.id == target.server_id)
			.values(votes=server.c.votes + 1))


@event.listens_for(Vote, "after_delete")
def _decrement_vote_count(mapper, connection, target):
	server = Server.__table__
	connection.execute(server.update()
			.where(server.c.id == target.server_id)
			.values(votes=server.c.votes - 1))


class Review(db.Model):
	id = db.Column(db.Integer, primary_key=True)

	server_id = db.Column(db.Integer,
			db.ForeignKey("server.id", ondelete="CASCADE"), nullable=False, index=True)

	minecraft_username = db.Column(db.String, nullable=False)
	review_text = db.Column(db.Text, nullable=False)
	rating = db.Column(db.Integer, nullable=False)
	ip_address = db.Column(db.String, nullable=False)

	created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

	server = db.relationship("Server", back_populates="reviews")

	def as_json(self):
		return {
			"id": self.id,
			"minecraft_username": self.minecraft_username,
			"review_text": self.review_text,
			"rating": self.rating,
			"created_at": self.created_at.isoformat(),
		}


class AnalyticsEvent(db.Model):
	__table_args__ = (
		db.Index("ix_analytics_event_server_created", "server_id", "created_at"),
	)

	id = db.Column(db.Integer, primary_key=True)

	server_id = db.Column(db.Integer,
			db.ForeignKey("server.id", ondelete="CASCADE"), nullable=False)

	event_type = db.Column(db.String(16), nullable=False, index=True)

	# Salted hash of the visitor address
	user_ip_hash = db.Column(db.String(16), nullable=False)
	user_agent = db.Column(db.String, nullable=True)
	referrer = db.Column(db.String, nullable=True)
	session_id = db.Column(db.String, nullable=True, index=True)

	meta = db.Column(db.JSON, nullable=False, default=dict)

	created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)


class DailyAnalytics(db.Model):
	__table_args__ = (
		db.UniqueConstraint("server_id", "date", name="uq_daily_analytics_server_date"),
	)

	id = db.Column(db.Integer, primary_key=True)

	server_id = db.Column(db.Integer,
			db.ForeignKey("server.id", ondelete="CASCADE"), nullable=False)
	date = db.Column(db.Date, nullable=False, index=True)

	impressions = db.Column(db.Integer, nullable=False, default=0)
	clicks = db.Column(db.Integer, nullable=False, default=0)
	ip_copies = db.Column(db.Integer, nullable=False, default=0)
	votes = db.Column(db.Integer, nullable=False, default=0)
	reviews = db.Column(db.Integer, nullable=False, default=0)
	unique_visitors = db.Column(db.Integer, nullable=False, default=0)

	updated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

	def as_json(self):
		return {
			"date": self.date.isoformat(),
			"impressions": self.impressions,
			"clicks": self.clicks,
			"ip_copies": self.ip_copies,
			"votes": self.votes,
			"reviews": self.reviews,
			"unique_visitors": self.unique_visitors,
		}


class SponsoredServer(db.Model):
	"""
	Promoted listing managed by administrators, shown above the regular list.
	"""
	id = db.Column(db.Integer, primary_key=True)

	name = db.Column(db.String, nullable=False)
	address = db.Column(db.String, nullable=False)
	description = db.Column(db.String, nullable=True)
	banner_url = db.Column(db.String, nullable=True)
	website = db.Column(db.String, nullable=True)

	display_order = db.Column(db.Integer, nullable=False, default=0)
	is_active = db.Column(db.Boolean, nullable=False, default=True)

	created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
	updated_at = db.Column(db.DateTime, default=datetime.utcnow,
			onupdate=datetime.utcnow, nullable=False)

	def as_json(self):
		return {
			"id": self.id,
			"name": self.name,
			"address": self.address,
			"description": self.description,
			"banner_url": self.banner_url,
			"website": self.website,
			"display_order": self.display_order,
			"is_active": self.is_active,
		}
