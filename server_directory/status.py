from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import quote

import httpx

from .app import app
from .cache import StatusCache
from .models import DEFAULT_PORTS


@dataclass
class ServerStatus:
	online: bool
	players_online: int = 0
	players_max: int = 0
	version: Optional[str] = None
	icon: Optional[str] = None
	motd: List[str] = field(default_factory=list)
	hostname: Optional[str] = None

	@property
	def motd_clean(self):
		return " ".join(self.motd) or None


def format_address(address, port, bedrock=False):
	"""Address path segment for the status APIs, omitting the default port."""
	default = DEFAULT_PORTS["bedrock" if bedrock else "java"]
	if port is None or port == default:
		return address
	return f"{address}:{port}"


def _icon(data):
	icon = data.get("icon")
	return icon if isinstance(icon, str) else None


def _players(data):
	players = data.get("players")
	if not isinstance(players, dict):
		return 0, 0
	return players.get("online") or 0, players.get("max") or 0


def parse_primary(data):
	"""Normalize a response of the primary (mcsrvstat.us v3) API."""
	players_online, players_max = _players(data)
	motd = data.get("motd")
	lines = (motd.get("clean") or []) if isinstance(motd, dict) else []
	if isinstance(lines, str):
		lines = [lines]
	return ServerStatus(
		online=bool(data.get("online")),
		players_online=players_online,
		players_max=players_max,
		version=data.get("version"),
		icon=_icon(data),
		motd=[str(line) for line in lines],
		hostname=data.get("hostname"),
	)


def parse_fallback(data):
	"""Normalize a response of the fallback (mcstatus.io v2) API."""
	players_online, players_max = _players(data)

	version = data.get("version")
	if isinstance(version, dict):
		version = version.get("name_clean") or version.get("name")

	motd = data.get("motd")
	clean = motd.get("clean") if isinstance(motd, dict) else None

	return ServerStatus(
		online=bool(data.get("online")),
		players_online=players_online,
		players_max=players_max,
		version=version,
		icon=_icon(data),
		motd=[clean] if clean else [],
		hostname=data.get("host"),
	)


class StatusChecker:
	"""Queries third-party status APIs for a server, with a result cache.

	A check never raises: network errors, error responses and malformed
	payloads all give None, meaning the status is unknown.
	"""

	def __init__(self, cache=None, client=None, config=None):
		config = config if config is not None else app.config
		self.primary_url = config["STATUS_API_PRIMARY"]
		self.primary_bedrock_url = config["STATUS_API_PRIMARY_BEDROCK"]
		self.fallback_url = config["STATUS_API_FALLBACK"]

		self.cache = cache if cache is not None else StatusCache(config["STATUS_CACHE_TTL"])

		if client is None:
			client = httpx.Client(
				timeout=httpx.Timeout(config["STATUS_API_TIMEOUT"]),
				headers={"User-Agent": config["STATUS_API_USER_AGENT"]},
				follow_redirects=True,
			)
		self.client = client

	def close(self):
		self.client.close()

	def __enter__(self):
		return self

	def __exit__(self, *exc_info):
		self.close()

	def check(self, address, port, platform="java", use_cache=True):
		key = f"{address}:{port}:{platform}"

		if use_cache:
			cached = self.cache.get(key)
			if cached is not None:
				app.logger.debug("Using cached status for %s:%s.", address, port)
				return cached

		bedrock = platform == "bedrock"
		result = self._fetch(
			self.primary_bedrock_url if bedrock else self.primary_url,
			format_address(address, port, bedrock),
			parse_primary)

		# The fallback API only knows Java edition servers
		if result is None and not bedrock:
			result = self._fetch(self.fallback_url,
				format_address(address, port), parse_fallback)

		if result is not None and use_cache:
			self.cache.put(key, result)

		return result

	def _fetch(self, base_url, address, parse):
		url = base_url + quote(address, safe="")
		try:
			response = self.client.get(url)
		except httpx.HTTPError as e:
			app.logger.warning("Status request for %s failed: %s", address, e)
			return None

		if not response.is_success:
			app.logger.warning("Status request for %s returned HTTP %d.",
				address, response.status_code)
			return None

		try:
			data = response.json()
		except ValueError:
			app.logger.warning("Status response for %s is not valid JSON.", address)
			return None

		if not isinstance(data, dict):
			app.logger.warning("Status response for %s is not an object.", address)
			return None

		return parse(data)
