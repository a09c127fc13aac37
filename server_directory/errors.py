class ListingError(Exception):
	"""Base class for errors reported back to the client."""
	status_code = 400


class ValidationError(ListingError):
	status_code = 400


class PermissionDenied(ListingError):
	status_code = 403

	def __init__(self, message="You are not allowed to do that."):
		super().__init__(message)


class NotFound(ListingError):
	status_code = 404


class InvalidTransition(ListingError):
	status_code = 409

	def __init__(self, current, requested):
		super().__init__(f"Cannot change server status from {current!r} to {requested!r}.")
		self.current = current
		self.requested = requested


class VoteCooldown(ListingError):
	status_code = 429

	def __init__(self):
		super().__init__("You have already voted for this server within the last 8 hours.")
