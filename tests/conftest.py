import os
from datetime import datetime

import pytest

# Must be set before the application is imported
os.environ["DATABASE_URL"] = "sqlite://"

from server_directory import app as flask_app, db, ranking
from server_directory.models import Server, UserProfile


@pytest.fixture(autouse=True)
def database():
	with flask_app.app_context():
		db.create_all()
		ranking.pending_updates.clear()
		yield db
		db.session.remove()
		db.drop_all()


@pytest.fixture
def client():
	return flask_app.test_client()


@pytest.fixture
def make_user():
	def make(user_id="user1", is_admin=False, is_banned=False):
		user = UserProfile(id=user_id, username=user_id,
			email=f"{user_id}@example.com", is_admin=is_admin, is_banned=is_banned)
		db.session.add(user)
		db.session.commit()
		return user
	return make


@pytest.fixture
def make_server(make_user):
	counter = iter(range(1, 1000))

	def make(owner=None, name=None, status="approved", votes=0, created_at=None,
			address=None, **kwargs):
		n = next(counter)
		if owner is None:
			owner = db.session.get(UserProfile, "owner") or make_user("owner")
		server = Server(
			name=name or f"Server {n}",
			slug=f"server-{n}",
			address=address or f"mc{n}.example.com",
			gamemode=kwargs.pop("gamemode", "survival"),
			description="A server",
			status=status,
			votes=votes,
			created_at=created_at or datetime(2025, 1, 1, 0, 0, n),
			user_id=owner.id,
			**kwargs,
		)
		db.session.add(server)
		db.session.commit()
		return server
	return make
