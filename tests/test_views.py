from server_directory import tasks
from server_directory.app import app, db
from server_directory.models import DailyAnalytics, Server
from server_directory.status import ServerStatus


def auth(user_id):
	return {app.config["AUTH_USER_HEADER"]: user_id}


def test_server_list(client, make_server):
	make_server(name="Alpha", votes=2)
	make_server(name="Beta", votes=5)
	make_server(name="Hidden", status="pending")

	resp = client.get("/api/servers")
	assert resp.status_code == 200
	assert [s["name"] for s in resp.json["servers"]] == ["Beta", "Alpha"]
	assert resp.json["total"] == 2


def test_pending_list_requires_admin(client, make_user):
	make_user("alice")
	make_user("admin", is_admin=True)

	assert client.get("/api/servers?status=pending").status_code == 403
	assert client.get("/api/servers?status=pending", headers=auth("alice")).status_code == 403
	assert client.get("/api/servers?status=pending", headers=auth("admin")).status_code == 200


def test_server_detail(client, make_server):
	server = make_server(votes=4)

	resp = client.get(f"/api/servers/{server.slug}")
	assert resp.status_code == 200
	assert resp.json["id"] == server.id
	assert resp.json["rank"] == 1
	assert resp.json["review_count"] == 0

	assert client.get("/api/servers/missing").status_code == 404


def test_submit_and_approve(client, make_user):
	make_user("alice")
	make_user("admin", is_admin=True)

	resp = client.post("/api/servers", headers=auth("alice"), json={
		"name": "Example Craft",
		"address": "play.example.com",
		"platform": "java",
		"gamemode": "survival",
		"description": "A friendly server.",
	})
	assert resp.status_code == 201
	server_id = resp.json["id"]
	assert resp.json["status"] == "pending"

	# Pending servers are only visible to their owner and admins
	assert client.get(f"/api/servers/{server_id}/stats").status_code == 404
	assert client.get(f"/api/servers/{server_id}/stats", headers=auth("alice")).status_code == 200

	resp = client.post(f"/api/admin/servers/{server_id}/status",
		headers=auth("alice"), json={"status": "approved"})
	assert resp.status_code == 403

	resp = client.post(f"/api/admin/servers/{server_id}/status",
		headers=auth("admin"), json={"status": "approved"})
	assert resp.status_code == 200
	assert resp.json["status"] == "approved"

	resp = client.post(f"/api/admin/servers/{server_id}/status",
		headers=auth("admin"), json={"status": "pending"})
	assert resp.status_code == 409


def test_submit_requires_sign_in(client):
	resp = client.post("/api/servers", json={"name": "X"})
	assert resp.status_code == 403
	assert "error" in resp.json


def test_submit_validation_error(client, make_user):
	make_user("alice")
	resp = client.post("/api/servers", headers=auth("alice"), json={"name": "X"})
	assert resp.status_code == 400
	assert "missing" in resp.json["error"]


def test_vote(client, make_server):
	server = make_server()

	resp = client.post(f"/api/servers/{server.id}/vote", json={"minecraft_username": "Steve"})
	assert resp.status_code == 201
	assert resp.json["votes"] == 1
	assert app.config["ANALYTICS_SESSION_COOKIE"] in resp.headers.get("Set-Cookie", "")

	resp = client.post(f"/api/servers/{server.id}/vote")
	assert resp.status_code == 429
	assert db.session.get(Server, server.id).votes == 1


def test_review(client, make_server):
	server = make_server()

	resp = client.post(f"/api/servers/{server.id}/reviews", json={
		"minecraft_username": "Steve",
		"review_text": "x" * 99,
		"rating": 5,
	})
	assert resp.status_code == 400

	resp = client.post(f"/api/servers/{server.id}/reviews", json={
		"minecraft_username": "Steve",
		"review_text": "x" * 100,
		"rating": 5,
	})
	assert resp.status_code == 201

	resp = client.get(f"/api/servers/{server.id}/reviews")
	assert resp.json["review_count"] == 1
	assert resp.json["average_rating"] == 5.0
	assert len(resp.json["reviews"]) == 1


def test_track_event(client, make_server):
	server = make_server()

	resp = client.post(f"/api/servers/{server.id}/events", json={"event_type": "click"})
	assert resp.status_code == 204
	resp = client.post(f"/api/servers/{server.id}/events", json={"event_type": "ip_copy"})
	assert resp.status_code == 204

	row = DailyAnalytics.query.filter_by(server_id=server.id).one()
	assert (row.clicks, row.ip_copies, row.unique_visitors) == (1, 1, 1)

	resp = client.post(f"/api/servers/{server.id}/events", json={"event_type": "vote"})
	assert resp.status_code == 400


def test_analytics_summary_permissions(client, make_user, make_server):
	server = make_server(owner=make_user("alice"))
	make_user("mallory")

	assert client.get(f"/api/servers/{server.id}/analytics").status_code == 403
	assert client.get(f"/api/servers/{server.id}/analytics",
		headers=auth("mallory")).status_code == 403

	resp = client.get(f"/api/servers/{server.id}/analytics", headers=auth("alice"))
	assert resp.status_code == 200
	assert resp.json["total_impressions"] == 0
	assert resp.json["today"] is None


def test_status_lookup(client, monkeypatch):
	calls = []

	def check(address, port, platform="java", use_cache=True):
		calls.append((address, port, platform))
		return ServerStatus(online=True, players_online=3, players_max=20)

	monkeypatch.setattr(tasks.checker, "check", check)

	resp = client.get("/api/status?address=mc.example.com")
	assert resp.json["online"] is True
	assert resp.json["players_online"] == 3

	client.get("/api/status?address=pe.example.com&platform=bedrock")
	assert calls == [("mc.example.com", 25565, "java"), ("pe.example.com", 19132, "bedrock")]

	assert client.get("/api/status").status_code == 400


def test_ban_user(client, make_user):
	make_user("admin", is_admin=True)
	make_user("mallory")

	resp = client.post("/api/admin/users/mallory/ban", headers=auth("admin"),
		json={"banned": True, "reason": "Spam"})
	assert resp.status_code == 200
	assert resp.json["is_banned"]

	assert client.post("/api/admin/users/nobody/ban", headers=auth("admin"),
		json={"banned": True}).status_code == 404


def test_sponsored(client, make_user):
	make_user("admin", is_admin=True)

	resp = client.post("/api/admin/sponsored", headers=auth("admin"),
		json={"name": "Sponsor", "address": "sponsor.example.com"})
	assert resp.status_code == 201
	sponsored_id = resp.json["id"]

	assert [s["name"] for s in client.get("/api/sponsored").json["servers"]] == ["Sponsor"]

	resp = client.patch(f"/api/admin/sponsored/{sponsored_id}", headers=auth("admin"),
		json={"is_active": False})
	assert resp.status_code == 200
	assert client.get("/api/sponsored").json["servers"] == []

	assert client.delete(f"/api/admin/sponsored/{sponsored_id}",
		headers=auth("admin")).status_code == 204


def test_my_servers(client, make_user, make_server):
	owner = make_user("alice")
	server = make_server(owner=owner, status="pending")
	make_server()

	resp = client.get("/api/my-servers", headers=auth("alice"))
	assert [s["id"] for s in resp.json["servers"]] == [server.id]

	resp = client.get("/api/my-servers/analytics", headers=auth("alice"))
	assert list(resp.json["servers"]) == [str(server.id)]

	assert client.get("/api/my-servers").status_code == 403


def test_admin_dashboard(client, make_user, make_server):
	make_user("admin", is_admin=True)
	make_user("alice")
	make_server(address="dup.example.com")
	make_server(address="DUP.example.com:25566", status="pending")

	assert client.get("/api/admin/stats", headers=auth("alice")).status_code == 403

	resp = client.get("/api/admin/stats", headers=auth("admin"))
	assert resp.status_code == 200
	assert resp.json["servers"]["total"] == 2
	assert resp.json["servers"]["pending"] == 1
	assert resp.json["users"]["admins"] == 1

	resp = client.get("/api/admin/activity?limit=1", headers=auth("admin"))
	assert len(resp.json["servers"]) == 1
	assert resp.json["votes"] == []

	resp = client.get("/api/admin/duplicates", headers=auth("admin"))
	assert [g["domain"] for g in resp.json["duplicates"]] == ["dup.example.com"]
	assert len(resp.json["duplicates"][0]["servers"]) == 2


def test_admin_delete_user_servers(client, make_user, make_server):
	make_user("admin", is_admin=True)
	alice = make_user("alice")
	make_server(owner=alice)
	make_server(owner=alice)
	make_server()

	url = "/api/admin/users/alice/servers"
	assert client.delete(url, headers=auth("alice")).status_code == 403

	resp = client.delete(url, headers=auth("admin"))
	assert resp.status_code == 200
	assert resp.json == {"deleted": 2}
	assert Server.query.count() == 1

	assert client.delete("/api/admin/users/nobody/servers",
		headers=auth("admin")).status_code == 404
