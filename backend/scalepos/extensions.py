# Overview: Flask extension instances shared by models, services and the CLI.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

# Checkout results are serialized after the sale commit and again after the
# loyalty commit; keep loaded rows readable across both.
db = SQLAlchemy(session_options={"expire_on_commit": False})
migrate = Migrate()
