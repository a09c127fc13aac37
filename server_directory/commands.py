import click

from .analytics import cleanup_old_analytics
from .app import app, db
from .models import PLATFORMS, UserProfile
from .monitor import cleanup_old_stats, scan_servers
from .ranking import CADENCES, update_ranks
from .tasks import checker


@app.cli.command("scan")
@click.option("--limit", type=int, help="Maximum number of servers to check.")
@click.option("--delay", type=float, help="Seconds to wait between checks.")
def scan(limit, delay):
	"""Check the status of approved servers now.
	"""
	results = scan_servers(checker, delay=delay, limit=limit)

	for result in results:
		color = "green" if result["online"] else "red"
		click.echo(f'{result["server"]}: ' +
			click.style(result["status"], fg=color))

	online = sum(1 for result in results if result["online"])
	click.echo(click.style(f"Checked {len(results)} servers, {online} online", fg="green"))


@app.cli.command("update-ranks")
@click.argument("cadence", type=click.Choice(CADENCES))
def update_ranks_command(cadence):
	"""Store a daily or hourly rank snapshot.
	"""
	count = update_ranks(cadence)
	click.echo(click.style(f"Ranked {count} servers", fg="green"))


@app.cli.command("check-server")
@click.argument("address")
@click.option("--port", type=int)
@click.option("--platform", type=click.Choice(PLATFORMS), default="java")
def check_server(address, port, platform):
	"""Query the status APIs for a single server, bypassing the cache.
	"""
	if port is None:
		port = 19132 if platform == "bedrock" else 25565

	result = checker.check(address, port, platform, use_cache=False)
	if result is None:
		raise click.ClickException(f"Status of {address}:{port} is unknown")

	if not result.online:
		click.echo(click.style(f"{address}:{port} is offline", fg="red"))
		return

	click.echo(click.style(f"{address}:{port} is online", fg="green"))
	click.echo(f"Players: {result.players_online}/{result.players_max}")
	if result.version:
		click.echo(f"Version: {result.version}")
	if result.motd_clean:
		click.echo(f"MOTD: {result.motd_clean}")


@app.cli.command("cleanup")
def cleanup():
	"""Remove status samples and analytics past their retention.
	"""
	stats = cleanup_old_stats()
	events, days = cleanup_old_analytics()
	click.echo(click.style(f"Removed {stats} status samples, {events} analytics "
		f"events and {days} daily analytics rows", fg="green"))


@app.cli.command("promote-admin")
@click.argument("user_id")
def promote_admin(user_id):
	"""Grant administrator rights to an existing user.
	"""
	user = db.session.get(UserProfile, user_id)
	if user is None:
		raise click.ClickException(f"No user with id {user_id}")

	user.is_admin = True
	db.session.commit()

	click.echo(click.style(f"{user.username or user.id} is now an administrator", fg="green"))
