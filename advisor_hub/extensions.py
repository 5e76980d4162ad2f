"""Application-wide Flask extensions."""

from flask_sqlalchemy import SQLAlchemy


# A single SQLAlchemy handle shared by the web app and the CLI. The engine is
# configured in :func:`advisor_hub.create_app` so it follows the deployment
# environment (pooled Postgres in production, SQLite locally).
db = SQLAlchemy()
