from .analytics import cleanup_old_analytics
from .app import app, celery
from .monitor import cleanup_old_stats, scan_servers
from .ranking import update_ranks
from .status import StatusChecker


# Shared by all checks of this worker process so that results are reused
# across monitoring runs.
checker = StatusChecker()


@celery.task
def scan_servers_task():
	results = scan_servers(checker)

	# Today's ranking is refreshed after every monitoring run
	update_ranks_task.delay("daily")

	return results


@celery.task
def update_ranks_task(cadence):
	return update_ranks(cadence)


@celery.task
def cleanup_task():
	if not app.config["MONITORING_ENABLED"]:
		app.logger.warning("Database not configured, skipping cleanup.")
		return

	stats = cleanup_old_stats()
	events, days = cleanup_old_analytics()
	checker.cache.cleanup()

	app.logger.info("Cleanup removed %d status samples, %d analytics events "
		"and %d daily analytics rows.", stats, events, days)


@celery.on_after_configure.connect
def setup_periodic_tasks(sender, **kwargs):
	sender.add_periodic_task(app.config["SCAN_INTERVAL"].total_seconds(),
		scan_servers_task.s(), name='Check server status')
	sender.add_periodic_task(60*60, update_ranks_task.s("hourly"),
		name='Hourly rank snapshot')
	sender.add_periodic_task(24*60*60, cleanup_task.s(), name='Remove old statistics')
