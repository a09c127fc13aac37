import logging
from logging.config import fileConfig

from alembic import context
from flask import current_app


config = context.config

# Interpret the config file for Python logging.
fileConfig(config.config_file_name)
logger = logging.getLogger("alembic.env")

db = current_app.extensions["migrate"].db

config.set_main_option("sqlalchemy.url",
	db.engine.url.render_as_string(hide_password=False).replace("%", "%%"))
target_metadata = db.metadata


def run_migrations_offline():
	"""Emits the migration SQL without a database connection."""
	context.configure(url=config.get_main_option("sqlalchemy.url"),
		target_metadata=target_metadata, literal_binds=True)

	with context.begin_transaction():
		context.run_migrations()


def run_migrations_online():
	def process_revision_directives(context, revision, directives):
		# Don't generate empty migrations
		if getattr(config.cmd_opts, "autogenerate", False):
			script = directives[0]
			if script.upgrade_ops.is_empty():
				directives[:] = []
				logger.info("No changes in schema detected.")

	conf_args = current_app.extensions["migrate"].configure_args
	conf_args.setdefault("process_revision_directives", process_revision_directives)

	with db.engine.connect() as connection:
		context.configure(connection=connection,
			target_metadata=target_metadata, **conf_args)

		with context.begin_transaction():
			context.run_migrations()


if context.is_offline_mode():
	run_migrations_offline()
else:
	run_migrations_online()
