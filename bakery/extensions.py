# Overview: Flask extension instances for database and migrations.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

# Unbound until create_app() calls init_app with an explicit config.
db = SQLAlchemy()
migrate = Migrate()
