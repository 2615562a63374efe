# Overview: Flask extension instances; used by the SQL storage backend and Alembic migrations.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()
