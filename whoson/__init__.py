# whoson/__init__.py
import logging
from datetime import timedelta

from flask import Flask

from .cli import register_cli
from .config import load_config
from .models import get_engine
from .routes import register_api
from .services import ShiftService
from .sources import build_source
from .store import LocalStore
from .sync import SyncPolicy


def create_app(config=None, source=None):
    cfg = load_config(config)
    app = Flask(__name__)
    app.config.update(cfg)

    logging.basicConfig(
        level=getattr(logging, app.config["LOG_LEVEL"], logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    # Upstream source (raises ConfigurationError when nothing is configured)
    source = source or build_source(app.config)
    app.extensions["whoson.shift_service"] = ShiftService(source)

    # Local cache
    store = LocalStore(get_engine(app.config["DATABASE_URL"]))
    app.extensions["whoson.store"] = store
    app.extensions["whoson.sync_policy"] = SyncPolicy(
        store, source,
        freshness_threshold=timedelta(seconds=app.config["SYNC_FRESHNESS_SECONDS"]),
    )

    register_api(app)
    register_cli(app)

    return app
