import json
from datetime import date, timedelta
from pathlib import Path

import pytest

from src.config.catalog import load_catalog
from src.config.logging import configure_logging
from src.config.settings import LoggingSettings, OperaSettings


FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture(scope="session", autouse=True)
def console_logging():
    """Send log output to stderr so command output on stdout stays parseable."""
    configure_logging(LoggingSettings(level="DEBUG", format="console"))


@pytest.fixture
def availability_flat_response():
    """Load OPERA availability response in the flat (roomRates) shape."""
    with open(FIXTURES_DIR / "opera_api" / "availability_flat.json") as f:
        return json.load(f)


@pytest.fixture
def availability_grouped_response():
    """Load OPERA availability response in the grouped (ratePlans) shape."""
    with open(FIXTURES_DIR / "opera_api" / "availability_grouped.json") as f:
        return json.load(f)


@pytest.fixture
def reservation_created_response():
    """Load OPERA reservation creation response (hypermedia links)."""
    with open(FIXTURES_DIR / "opera_api" / "reservation_created.json") as f:
        return json.load(f)


@pytest.fixture
def token_grant_response():
    """Load OPERA OAuth token grant response."""
    with open(FIXTURES_DIR / "opera_api" / "token_grant.json") as f:
        return json.load(f)


@pytest.fixture
def opera_settings():
    """Complete OPERA settings with fast retries."""
    return OperaSettings(
        gateway_url="https://gateway.example.com/",
        enterprise_id="ENTERPRISE1",
        hotel_id="HOTEL1",
        client_id="client-id",
        client_secret="client-secret",
        app_key="app-key-123",
        scope="urn:opc:hgbu:ws:__myscopes__",
        request_timeout=2.0,
        connect_timeout=1.0,
        token_max_retries=2,
        retry_backoff_seconds=0,
    )


@pytest.fixture
def catalog():
    """Built-in room/rate catalog."""
    return load_catalog()


@pytest.fixture
def stay_dates():
    """Future check-in/check-out pair (two nights)."""
    check_in = date.today() + timedelta(days=30)
    check_out = check_in + timedelta(days=2)
    return check_in.isoformat(), check_out.isoformat()
