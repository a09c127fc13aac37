# Copy this file to config.py next to the server_directory package to
# override the defaults from server_directory/config.py.

# Enables detailed tracebacks and an interactive Python console on errors.
# Never use in production!
#DEBUG = True

# Database to store servers, votes, statistics and analytics in.
# Defaults to the DATABASE_URL environment variable.
#SQLALCHEMY_DATABASE_URI = "postgresql://serverdirectory@localhost/serverdirectory"

# Message broker used by the monitoring worker.
#CELERY_BROKER_URL = "redis://localhost/0"

# Request header carrying the signed in user's id, as set by the
# authentication gateway in front of the application.
#AUTH_USER_HEADER = "X-User-Id"

# Identifies the monitor to the status APIs.
#STATUS_API_USER_AGENT = "ServerDirectory-Monitor/1.0 (admin@example.com)"

# Check fewer servers, further apart, if the status APIs rate limit us.
#SCAN_LIMIT = 50
#SCAN_DELAY = 2.0

# Must be changed for production, otherwise visitor hashes can be reversed
# by anyone who knows the default.
#ANALYTICS_SALT = "change me"
