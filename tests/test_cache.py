from datetime import timedelta

from server_directory.cache import StatusCache


class FakeClock:
	def __init__(self):
		self.now = 1000.0

	def __call__(self):
		return self.now


def test_get_before_expiry():
	clock = FakeClock()
	cache = StatusCache(timedelta(minutes=45), clock=clock)
	cache.put("mc.example.com:25565:java", "status")

	clock.now += 45 * 60 - 1
	assert cache.get("mc.example.com:25565:java") == "status"


def test_get_after_expiry():
	clock = FakeClock()
	cache = StatusCache(60, clock=clock)
	cache.put("a", 1)

	clock.now += 60
	assert cache.get("a") is None


def test_missing_key():
	assert StatusCache(60).get("nothing") is None


def test_cleanup_removes_expired_entries():
	clock = FakeClock()
	cache = StatusCache(60, clock=clock)
	cache.put("old", 1)
	clock.now += 30
	cache.put("new", 2)
	clock.now += 31

	cache.cleanup()
	assert len(cache) == 1
	assert cache.get("new") == 2


def test_remove_and_clear():
	cache = StatusCache(60)
	cache.put("a", 1)
	cache.put("b", 2)

	cache.remove("a")
	cache.remove("missing")
	assert cache.get("a") is None
	assert len(cache) == 1

	cache.clear()
	assert len(cache) == 0
