import time
from datetime import timedelta
from threading import RLock


class StatusCache:
	"""Process-local store of values that expire after a fixed time.

	`clock` must return monotonically increasing seconds; tests pass a fake
	clock to control expiry.
	"""

	def __init__(self, ttl, clock=time.monotonic):
		if isinstance(ttl, timedelta):
			ttl = ttl.total_seconds()
		self.ttl = ttl
		self.clock = clock
		self.table = {}
		self.lock = RLock()

	def put(self, k, value):
		with self.lock:
			self.table[k] = (self.clock() + self.ttl, value)

	def remove(self, k):
		with self.lock:
			self.table.pop(k, None)

	def get(self, k):
		with self.lock:
			e = self.table.get(k)
		if e and e[0] > self.clock():
			return e[1]
		return None

	def cleanup(self):
		with self.lock:
			now = self.clock()
			self.table = {k: e for k, e in self.table.items() if e[0] > now}

	def clear(self):
		with self.lock:
			self.table = {}

	def __len__(self):
		return len(self.table)
