from datetime import datetime, timedelta

import pytest

from server_directory.app import db
from server_directory.errors import (InvalidTransition, NotFound,
	PermissionDenied, ValidationError, VoteCooldown)
from server_directory.listings import (ban_user, create_server,
	create_sponsored_server, active_sponsored_servers, delete_server,
	delete_user_servers, duplicate_servers, find_server_by_slug, list_servers,
	recent_activity, review_stats, server_counts, server_statistics,
	set_server_status, submit_review, update_server, user_statistics,
	vote_for_server, vote_window)
from server_directory.models import (AnalyticsEvent, DailyAnalytics, Server,
	Vote)


NOW = datetime(2025, 3, 15, 12)

SUBMISSION = {
	"name": "Example Craft",
	"address": "play.example.com",
	"platform": "java",
	"gamemode": "survival",
	"description": "A friendly survival server.",
}


def test_create_server(make_user):
	user = make_user()
	server = create_server(user, dict(SUBMISSION, additional_gamemodes=["pvp", "skyblock"]))
	db.session.commit()

	assert server.status == "pending"
	assert server.votes == 0
	assert server.slug == "example-craft"
	assert server.java_port == 25565
	assert server.as_json()["additional_gamemodes"] == ["pvp", "skyblock"]


def test_create_server_unique_slug(make_user):
	user = make_user()
	first = create_server(user, dict(SUBMISSION))
	db.session.commit()
	second = create_server(user, dict(SUBMISSION))
	db.session.commit()

	assert (first.slug, second.slug) == ("example-craft", "example-craft-2")


@pytest.mark.parametrize("changes", [
	{"name": None},
	{"name": "   "},
	{"address": "not an address!"},
	{"java_port": 70000},
	{"platform": "console"},
	{"website": "javascript:alert(1)"},
	{"additional_gamemodes": ["pvp", 3]},
])
def test_create_server_validation(make_user, changes):
	obj = dict(SUBMISSION)
	for name, value in changes.items():
		if value is None:
			del obj[name]
		else:
			obj[name] = value

	with pytest.raises(ValidationError):
		create_server(make_user(), obj)


def test_create_server_requires_user(make_user):
	with pytest.raises(PermissionDenied):
		create_server(None, dict(SUBMISSION))
	with pytest.raises(PermissionDenied):
		create_server(make_user("banned", is_banned=True), dict(SUBMISSION))


def test_update_server(make_user, make_server):
	owner = make_user("alice")
	server = make_server(owner=owner, online=True, players_online=3, players_max=10)

	update_server(owner, server, {"name": "Renamed", "description": "New text"})
	db.session.commit()
	assert server.slug == "renamed"
	assert server.online

	update_server(owner, server, {"address": "new.example.com"})
	db.session.commit()
	assert server.address == "new.example.com"
	assert not server.online


def test_update_server_permissions(make_user, make_server):
	server = make_server(owner=make_user("alice"))

	with pytest.raises(PermissionDenied):
		update_server(make_user("mallory"), server, {"name": "Mine"})

	update_server(make_user("admin", is_admin=True), server, {"name": "Admin edit"})
	assert server.name == "Admin edit"


def test_delete_server_removes_dependents(make_user, make_server):
	owner = make_user("alice")
	server = make_server(owner=owner)
	vote_for_server(server, "1.2.3.4", now=NOW)
	db.session.commit()

	delete_server(owner, server)
	db.session.commit()

	assert Server.query.count() == 0
	assert Vote.query.count() == 0
	assert AnalyticsEvent.query.count() == 0
	assert DailyAnalytics.query.count() == 0


def test_moderation_transitions(make_user, make_server):
	admin = make_user("admin", is_admin=True)
	server = make_server(status="pending")

	set_server_status(admin, server, "approved")
	assert server.status == "approved"

	with pytest.raises(InvalidTransition):
		set_server_status(admin, server, "pending")

	set_server_status(admin, server, "rejected")
	set_server_status(admin, server, "rejected")
	set_server_status(admin, server, "approved")
	assert server.status == "approved"


def test_moderation_requires_admin(make_user, make_server):
	owner = make_user("alice")
	server = make_server(owner=owner, status="pending")

	with pytest.raises(PermissionDenied):
		set_server_status(owner, server, "approved")
	assert server.status == "pending"


def test_list_servers(make_server):
	make_server(name="Skyblock Paradise", votes=3, gamemode="skyblock")
	top = make_server(name="Top Survival", votes=10)
	make_server(name="Hidden", votes=50, status="pending")
	make_server(name="Bedrock Land", votes=1, platform="bedrock")

	page = list_servers()
	assert page.total == 3
	assert page.items[0].id == top.id

	assert [s.name for s in list_servers(gamemode="skyblock").items] == ["Skyblock Paradise"]
	assert [s.name for s in list_servers(platform="bedrock").items] == ["Bedrock Land"]
	assert [s.name for s in list_servers(search="survival").items] == ["Top Survival"]
	assert list_servers(per_page=2, page=2).items[0].name == "Bedrock Land"


def test_server_counts(make_server):
	make_server()
	make_server()
	make_server(platform="bedrock")
	make_server(status="pending")

	counts = server_counts()
	assert counts["java"] == 2
	assert counts["bedrock"] == 1
	assert counts["crossplatform"] == 0
	assert counts["total"] == 3


def test_find_server_by_slug(make_server):
	server = make_server()
	server.slug = "my-server"
	db.session.commit()

	assert find_server_by_slug("my-server") is server
	assert find_server_by_slug("my_server") is server
	assert find_server_by_slug(str(server.id)) is server
	assert find_server_by_slug("other") is None
	assert find_server_by_slug("") is None


def test_vote_counter_matches_vote_rows(make_server):
	server = make_server()

	for address in ("1.1.1.1", "2.2.2.2", "3.3.3.3"):
		vote_for_server(server, address, now=NOW)
		db.session.commit()

	assert server.votes == 3
	assert Vote.query.filter_by(server_id=server.id).count() == 3

	db.session.delete(Vote.query.first())
	db.session.commit()

	assert db.session.get(Server, server.id).votes == 2


def test_vote_cooldown(make_server):
	server = make_server()

	vote_for_server(server, "1.1.1.1", username="Steve", now=NOW)
	db.session.commit()

	with pytest.raises(VoteCooldown):
		vote_for_server(server, "1.1.1.1", now=NOW + timedelta(hours=7, minutes=59))

	vote_for_server(server, "2.2.2.2", now=NOW + timedelta(hours=1))
	vote_for_server(server, "1.1.1.1", now=NOW + timedelta(hours=8, minutes=1))
	db.session.commit()

	assert server.votes == 3


def test_vote_cooldown_per_user(make_user, make_server):
	server = make_server()
	user = make_user("alice")

	vote_for_server(server, "1.1.1.1", user=user, now=NOW)
	db.session.commit()

	# A different address does not reset the signed in user's cooldown
	with pytest.raises(VoteCooldown):
		vote_for_server(server, "9.9.9.9", user=user, now=NOW + timedelta(hours=1))


def test_concurrent_vote_in_same_window(make_server):
	server = make_server()
	# A vote that passed the cooldown check elsewhere but landed in this window
	db.session.add(Vote(server_id=server.id, ip_address="1.1.1.1", voter="1.1.1.1",
		vote_window=vote_window(NOW), created_at=NOW - timedelta(hours=9)))
	db.session.commit()

	with pytest.raises(VoteCooldown):
		vote_for_server(server, "1.1.1.1", now=NOW)

	assert db.session.get(Server, server.id).votes == 1


def test_vote_requires_approved_server(make_server):
	with pytest.raises(NotFound):
		vote_for_server(make_server(status="pending"), "1.1.1.1")


def test_vote_records_analytics(make_server):
	server = make_server()
	vote_for_server(server, "1.1.1.1", now=NOW)
	db.session.commit()

	assert DailyAnalytics.query.filter_by(server_id=server.id).one().votes == 1


@pytest.mark.parametrize("length,valid", [(99, False), (100, True), (500, True), (501, False)])
def test_review_length(make_server, length, valid):
	server = make_server()
	text = "x" * length

	if valid:
		review = submit_review(server, "Steve", text, 5, "1.1.1.1")
		db.session.commit()
		assert review.id is not None
	else:
		with pytest.raises(ValidationError):
			submit_review(server, "Steve", text, 5, "1.1.1.1")


def test_review_length_ignores_surrounding_whitespace(make_server):
	with pytest.raises(ValidationError):
		submit_review(make_server(), "Steve", "   " + "x" * 98 + "   ", 4, "1.1.1.1")


@pytest.mark.parametrize("rating", [0, 6, "5", 4.5, None, True])
def test_review_rating(make_server, rating):
	with pytest.raises(ValidationError):
		submit_review(make_server(), "Steve", "x" * 150, rating, "1.1.1.1")


def test_review_stats(make_server):
	server = make_server()
	assert review_stats(server.id) == {"review_count": 0, "average_rating": 0}

	for rating in (5, 4, 4):
		submit_review(server, "Steve", "x" * 120, rating, "1.1.1.1")
	db.session.commit()

	assert review_stats(server.id) == {"review_count": 3, "average_rating": 4.3}
	assert DailyAnalytics.query.filter_by(server_id=server.id).one().reviews == 3


def test_ban_user(make_user):
	admin = make_user("admin", is_admin=True)
	target = make_user("mallory")

	ban_user(admin, target, True, "Spam")
	assert target.is_banned
	assert target.banned_by == "admin"

	ban_user(admin, target, False)
	assert not target.is_banned
	assert target.ban_reason is None

	with pytest.raises(ValidationError):
		ban_user(admin, admin, True)
	with pytest.raises(PermissionDenied):
		ban_user(target, admin, True)


def test_banned_user_cannot_vote(make_user, make_server):
	user = make_user("mallory", is_banned=True)
	with pytest.raises(PermissionDenied):
		vote_for_server(make_server(), "1.1.1.1", user=user)


def test_sponsored_servers(make_user):
	admin = make_user("admin", is_admin=True)
	create_sponsored_server(admin, {"name": "B", "address": "b.example.com", "display_order": 2})
	create_sponsored_server(admin, {"name": "A", "address": "a.example.com", "display_order": 1})
	create_sponsored_server(admin, {"name": "Off", "address": "c.example.com", "is_active": False})
	db.session.commit()

	assert [s.name for s in active_sponsored_servers()] == ["A", "B"]

	with pytest.raises(ValidationError):
		create_sponsored_server(admin, {"name": "No address"})
	with pytest.raises(PermissionDenied):
		create_sponsored_server(make_user("alice"), {"name": "X", "address": "x.example.com"})


def test_server_statistics(make_user, make_server):
	admin = make_user("admin", is_admin=True)
	make_server()
	make_server(platform="bedrock")
	make_server(status="pending", platform="crossplatform")
	make_server(status="rejected", created_at=datetime(2024, 12, 31))

	stats = server_statistics(admin, now=datetime(2025, 1, 20))
	assert stats == {
		"total": 4,
		"approved": 2,
		"pending": 1,
		"rejected": 1,
		"java": 2,
		"bedrock": 1,
		"crossplatform": 1,
		"this_month": 3,
	}

	with pytest.raises(PermissionDenied):
		server_statistics(make_user("alice"))


def test_user_statistics(make_user):
	admin = make_user("admin", is_admin=True)
	alice = make_user("alice")
	bob = make_user("bob", is_banned=True)
	admin.created_at = datetime(2025, 1, 5)
	alice.created_at = datetime(2025, 1, 10)
	bob.created_at = datetime(2024, 12, 1)
	db.session.commit()

	assert user_statistics(admin, now=datetime(2025, 1, 20)) == {
		"total": 3,
		"admins": 1,
		"regular": 2,
		"banned": 1,
		"this_month": 2,
	}


def test_recent_activity(make_user, make_server):
	admin = make_user("admin", is_admin=True)
	first = make_server(name="First")
	second = make_server(name="Second")
	vote_for_server(first, "1.2.3.4", username="Steve", now=NOW)
	vote_for_server(second, "1.2.3.4", now=NOW + timedelta(minutes=1))
	db.session.commit()

	activity = recent_activity(admin)
	assert [s["name"] for s in activity["servers"]] == ["Second", "First"]
	assert activity["servers"][0]["owner"] == "owner"
	assert [v["server"] for v in activity["votes"]] == ["Second", "First"]
	assert activity["votes"][1]["minecraft_username"] == "Steve"

	assert len(recent_activity(admin, limit=1)["servers"]) == 1


def test_duplicate_servers(make_user, make_server):
	admin = make_user("admin", is_admin=True)
	a = make_server(address="Play.Example.com")
	make_server(address="other.example.com")
	b = make_server(address="play.example.com:25566", status="pending")
	c = make_server(address="x.example.com")
	d = make_server(address="X.example.com:1")
	e = make_server(address="x.example.com:2")

	groups = duplicate_servers(admin)
	assert [(host, [s.id for s in servers]) for host, servers in groups] == [
		("x.example.com", [c.id, d.id, e.id]),
		("play.example.com", [a.id, b.id]),
	]

	with pytest.raises(PermissionDenied):
		duplicate_servers(None)


def test_delete_user_servers(make_user, make_server):
	admin = make_user("admin", is_admin=True)
	alice = make_user("alice")
	server = make_server(owner=alice)
	make_server(owner=alice, status="pending")
	kept = make_server()
	vote_for_server(server, "1.2.3.4", now=NOW)
	db.session.commit()

	with pytest.raises(PermissionDenied):
		delete_user_servers(alice, alice)

	assert delete_user_servers(admin, alice) == 2
	db.session.commit()

	assert [s.id for s in Server.query.all()] == [kept.id]
	assert Vote.query.count() == 0
	assert delete_user_servers(admin, alice) == 0
