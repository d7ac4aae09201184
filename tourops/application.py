import logging
import os

import click
from flask import Flask

from tourops.config import DevConfig
from tourops.extensions import db

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'

logger = logging.getLogger(__name__)


def configure_logging(app):
    handlers = [logging.StreamHandler()]
    if app.config.get('LOG_TO_FILE'):
        logs_dir = app.config['LOGS_DIR']
        os.makedirs(logs_dir, exist_ok=True)
        handlers.append(logging.FileHandler(os.path.join(logs_dir, 'app.log')))

    logging.basicConfig(
        level=getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
    )
    # Keep SQLAlchemy's engine logging quiet unless explicitly enabled
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)


def register_models():
    # Imported for their side effect of registering tables on db.metadata
    from tourops.models import agent, customer, customer_price_item, driver, invoice  # noqa: F401
    from tourops.models import job, job_fees, rep, supplier, vehicle, vehicle_type, zone  # noqa: F401


def create_app(config_object=None):
    app = Flask(__name__)
    app.config.from_object(config_object or DevConfig)
    configure_logging(app)

    uri = app.config.get('SQLALCHEMY_DATABASE_URI') or ''
    if uri.startswith('sqlite:///') and ':memory:' not in uri:
        os.makedirs(os.path.dirname(uri[len('sqlite:///'):]), exist_ok=True)

    db.init_app(app)
    register_models()

    @app.cli.command('init-db')
    def init_db():
        """Create all billing tables."""
        db.create_all()
        click.echo('Database tables created.')

    logger.info(f"Billing engine initialised with {app.config.get('SQLALCHEMY_DATABASE_URI')}")
    return app
