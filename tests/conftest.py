import os
import tempfile

# must be set before any project module reads the environment
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_FILE"] = os.path.join(tempfile.gettempdir(), "treksistem-tests.log")
os.environ["PLACEMENT_RATE_LIMIT"] = "1000/minute"
os.environ["MAX_REQUESTS_PER_SECOND"] = "10000"
os.environ["TRACKING_BASE_URL"] = "https://treksistem.com/track"

import pytest

from database.db import DBBase, SessionLocal, db_engine, init_models
from modules.service_config import validate_service_config

from .factories import BANDUNG, JAKARTA, per_km_config_data, zone_config_data


@pytest.fixture
def per_km_config():
    return validate_service_config(per_km_config_data()).unwrap()


@pytest.fixture
def zone_config():
    return validate_service_config(zone_config_data()).unwrap()


@pytest.fixture
def order_details_data():
    return {"pickup_address": dict(JAKARTA), "dropoff_address": dict(BANDUNG)}


@pytest.fixture
def db():
    init_models()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        DBBase.metadata.drop_all(bind=db_engine)
