import os
from datetime import timedelta

# Enables detailed tracebacks and an interactive Python console on errors.
# Never use in production!
DEBUG = False

# Database to use to store persistent server information.
# Server monitoring is disabled while this is unset or still a placeholder.
SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL")

# Message broker to forward messages from web server to worker threads
# Redis and RabbitMQ are good options.
#CELERY_BROKER_URL = "redis://localhost/0"

# Extra Celery settings, using Celery's lowercase setting names.
CELERY_CONFIG = {}

# Request header set by the authentication gateway holding the id of the
# signed in user.  Requests without it are anonymous.
AUTH_USER_HEADER = "X-User-Id"

# Status API endpoints.  The primary API is asked first, the fallback is
# only used for Java edition servers when the primary fails.
STATUS_API_PRIMARY = "https://api.mcsrvstat.us/3/"
STATUS_API_PRIMARY_BEDROCK = "https://api.mcsrvstat.us/bedrock/3/"
STATUS_API_FALLBACK = "https://api.mcstatus.io/v2/status/java/"
STATUS_API_USER_AGENT = "ServerDirectory-Monitor/1.0"

# Timeout, in seconds, for a single status API request.
STATUS_API_TIMEOUT = 10.0

# How long a status check result is reused before asking the API again.
STATUS_CACHE_TTL = timedelta(minutes=45)

# Maximum number of servers checked per monitoring run.
SCAN_LIMIT = 50

# Pause, in seconds, between two server checks to respect API rate limits.
SCAN_DELAY = 2.0

# Interval between monitoring runs.
SCAN_INTERVAL = timedelta(minutes=15)

# Retention of status samples and rank snapshots.
STATS_RETENTION = timedelta(days=90)
DAILY_RANK_RETENTION = timedelta(days=90)
HOURLY_RANK_RETENTION = timedelta(days=7)

# A change of this many votes since the last daily snapshot queues a rank update.
RANK_VOTE_DELTA = 10

# Delay before a vote-triggered rank update runs, so that bursts of votes
# are folded into a single recomputation.
RANK_UPDATE_COUNTDOWN = 60

# Minimum time between two votes of the same voter for the same server.
VOTE_COOLDOWN = timedelta(hours=8)

# Salt mixed into visitor addresses before they are hashed for analytics.
ANALYTICS_SALT = "server_directory_analytics"

# Retention of raw analytics events and of daily aggregates.
ANALYTICS_EVENT_RETENTION = timedelta(days=90)
ANALYTICS_DAILY_RETENTION = timedelta(days=365)

# Cookie holding the analytics session id.
ANALYTICS_SESSION_COOKIE = "sd_session_id"

# Number of servers per page in listings.
SERVERS_PER_PAGE = 25
