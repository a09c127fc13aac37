from server_directory import tasks
from server_directory.app import app, db
from server_directory.models import DailyRankSnapshot, UserProfile
from server_directory.status import ServerStatus


def test_promote_admin(make_user):
	make_user("alice")
	runner = app.test_cli_runner()

	result = runner.invoke(args=["promote-admin", "alice"])
	assert result.exit_code == 0
	assert db.session.get(UserProfile, "alice").is_admin

	result = runner.invoke(args=["promote-admin", "nobody"])
	assert result.exit_code != 0


def test_update_ranks(make_server):
	make_server(votes=3)
	make_server(votes=1)

	result = app.test_cli_runner().invoke(args=["update-ranks", "daily"])
	assert result.exit_code == 0
	assert "Ranked 2 servers" in result.output
	assert DailyRankSnapshot.query.count() == 2

	result = app.test_cli_runner().invoke(args=["update-ranks", "weekly"])
	assert result.exit_code != 0


def test_check_server(monkeypatch):
	def check(address, port, platform="java", use_cache=True):
		assert not use_cache
		if address == "down.example.com":
			return None
		return ServerStatus(online=True, players_online=4, players_max=10,
			version="1.21", motd=["Hi"])

	monkeypatch.setattr(tasks.checker, "check", check)
	runner = app.test_cli_runner()

	result = runner.invoke(args=["check-server", "mc.example.com"])
	assert result.exit_code == 0
	assert "mc.example.com:25565 is online" in result.output
	assert "Players: 4/10" in result.output

	result = runner.invoke(args=["check-server", "down.example.com"])
	assert result.exit_code != 0
