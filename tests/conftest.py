"""Pytest configuration and fixtures for test suite."""

import os
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

import pytest

# Set test environment BEFORE any other imports
os.environ.setdefault("APP_ENVIRONMENT", "test")

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from config import Settings, get_database_settings, get_email_settings, get_settings
from domain import Actor, Customer, StaffUser, UserRole
from notifications import DeliveryResult, EmailProvider, NotificationType, set_email_provider
from quotes import LineItemInput, QuoteCreate, build_memory_platform


# =============================================================================
# TEST DOUBLES
# =============================================================================

class RecordingEmailProvider(EmailProvider):
    """Captures messages instead of sending them; can fail for chosen addresses."""

    def __init__(self, fail_for=()):
        self.sent = []
        self.attempts = []
        self.fail_for = {address.lower() for address in fail_for}

    @property
    def provider_name(self) -> str:
        return "recording"

    def send(self, message):
        self.attempts.append(message)
        if message.to.lower() in self.fail_for:
            return DeliveryResult.failed(self.provider_name, "Mailbox unavailable", error_code="550")
        self.sent.append(message)
        return DeliveryResult.sent(self.provider_name, message_id=f"msg-{len(self.sent)}")

    def is_configured(self) -> bool:
        return True

    def messages_to(self, address):
        return [m for m in self.sent if m.to == address]


class FailingEmailProvider(EmailProvider):
    """Simulates a transport that is down."""

    def __init__(self, raise_error: bool = False):
        self.raise_error = raise_error
        self.attempts = 0

    @property
    def provider_name(self) -> str:
        return "failing"

    def send(self, message):
        self.attempts += 1
        if self.raise_error:
            raise ConnectionError("SMTP server unreachable")
        return DeliveryResult.failed(self.provider_name, "Connection refused")

    def is_configured(self) -> bool:
        return True


class FakeClock:
    """Deterministic clock for the lifecycle service."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


# =============================================================================
# CORE FIXTURES
# =============================================================================

@pytest.fixture(autouse=True)
def _reset_global_state():
    """Reset cached settings and the global email provider between tests."""
    yield
    get_settings.cache_clear()
    get_email_settings.cache_clear()
    get_database_settings.cache_clear()
    set_email_provider(None)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 15, 10, 0, tzinfo=timezone.utc))


@pytest.fixture
def email_provider():
    return RecordingEmailProvider()


@pytest.fixture
def failing_email_provider():
    return FailingEmailProvider()


@pytest.fixture
def make_email_provider():
    """Factory for recording providers that fail for chosen addresses."""
    return RecordingEmailProvider


@pytest.fixture
def app_settings():
    return Settings(
        public_base_url="https://quotes.example.com/",
        site_name="Logoz Custom",
        quote_number_prefix="Q",
    )


@pytest.fixture
def platform(app_settings, email_provider, clock):
    """In-memory platform with a recording email provider."""
    return build_memory_platform(settings=app_settings, email_provider=email_provider, clock=clock)


@pytest.fixture
def lifecycle(platform):
    return platform.lifecycle


# =============================================================================
# ACTORS AND DIRECTORY RECORDS
# =============================================================================

@pytest.fixture
def admin():
    return Actor.staff("user-admin", name="Alex Admin", email="alex@logoz.test", role=UserRole.ADMIN)


@pytest.fixture
def super_admin():
    return Actor.staff("user-super", name="Sam Super", email="sam@logoz.test", role=UserRole.SUPER_ADMIN)


@pytest.fixture
def editor():
    return Actor.staff("user-editor", name="Eddie Editor", email="eddie@logoz.test", role=UserRole.EDITOR)


@pytest.fixture
def customer(platform):
    return platform.directory.add_customer(Customer(
        id="cust-acme",
        contact_name="Jane Buyer",
        email="jane@acme.test",
        company_name="Acme Corp",
        phone="555-0100",
    ))


@pytest.fixture
def owner(platform):
    return platform.directory.add_user(StaffUser(
        id="user-owner",
        name="Olivia Owner",
        email="olivia@logoz.test",
        role=UserRole.ADMIN,
    ))


# =============================================================================
# QUOTE FACTORIES
# =============================================================================

def default_line_items():
    return [
        LineItemInput(name="Embroidered Polo", quantity=10, unit_price=Decimal("25.00")),
        LineItemInput(name="Setup Fee", item_type="SETUP_FEE", quantity=1, unit_price=Decimal("50.00")),
    ]


@pytest.fixture
def make_quote_data():
    """Build a QuoteCreate with a manual customer unless overridden."""
    def _make(**overrides):
        data = {
            "title": "Team Polos",
            "customer_name": "Walk-in Customer",
            "customer_email": "walkin@example.test",
            "line_items": default_line_items(),
        }
        data.update(overrides)
        return QuoteCreate(**data)
    return _make


@pytest.fixture
def create_quote(lifecycle, admin, make_quote_data):
    """Create a quote through the lifecycle service."""
    def _create(actor=None, **overrides):
        return lifecycle.create_quote(make_quote_data(**overrides), actor or admin)
    return _create


@pytest.fixture
def enable_notification(platform):
    """Enable a notification setting, optionally with recipients/overrides."""
    def _enable(notification_type: NotificationType, recipients=None, **fields):
        store = platform.notification_settings
        setting = store.get(notification_type)
        update = {"enabled": True, **fields}
        if recipients is not None:
            update["recipient_emails"] = list(recipients)
        return store.save(setting.model_copy(update=update))
    return _enable
