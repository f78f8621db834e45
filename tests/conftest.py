import pytest
from datetime import datetime, timezone
from fastapi.testclient import TestClient

from main import app, get_splitwise_manager
from models.expenseRequest import Expense
from utils import splitwiseManager
from utils.expenseCalculator import ExpenseCalculator
from utils.settlementCalculator import SettlementCalculator


class FakeSplitwiseUser:
    def __init__(self, id, first_name, paid_share="0.0"):
        self.id = id
        self.first_name = first_name
        self.paid_share = paid_share

    def getId(self):
        return self.id

    def getFirstName(self):
        return self.first_name

    def getPaidShare(self):
        return self.paid_share


class FakeSplitwiseExpense:
    def __init__(self, id, description, users, created_at=None, deleted_at=None, payment=False):
        self.id = id
        self.description = description
        self.users = users
        self.created_at = created_at
        self.deleted_at = deleted_at
        self.payment = payment

    def getId(self):
        return self.id

    def getDescription(self):
        return self.description

    def getUsers(self):
        return self.users

    def getCreatedAt(self):
        return self.created_at

    def getDeletedAt(self):
        return self.deleted_at

    def getPayment(self):
        return self.payment


class FakeSplitwiseGroup:
    def __init__(self, id, name, members):
        self.id = id
        self.name = name
        self.members = members

    def getId(self):
        return self.id

    def getName(self):
        return self.name

    def getMembers(self):
        return self.members


class FakeSplitwise:
    """Stands in for the splitwise.Splitwise client."""

    groups = []
    expenses = {}

    def __init__(self, consumer_key, consumer_secret, api_key=None):
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.api_key = api_key

    def getGroups(self):
        return self.groups

    def getGroup(self, id):
        for group in self.groups:
            if group.getId() == id:
                return group
        return None

    def getExpenses(self, group_id=None, limit=None):
        return self.expenses.get(group_id, [])


@pytest.fixture
def calculator():
    """Return a default (lenient) settlement calculator."""
    return SettlementCalculator()


@pytest.fixture
def strict_calculator():
    """Return a settlement calculator that rejects ignored expenses."""
    return SettlementCalculator(strict=True)


@pytest.fixture
def expense_calculator():
    """Return an expense calculator."""
    return ExpenseCalculator()


@pytest.fixture
def trip_expenses():
    """Expenses of a four person trip, as Expense models."""
    return [
        Expense(id="e1", groupId="g1", description="Cabin", amount=100, payer="Alice",
                createdAt=datetime(2024, 5, 1, tzinfo=timezone.utc)),
        Expense(id="e2", groupId="g1", description="Groceries", amount=50.5, payer="Bob",
                createdAt=datetime(2024, 5, 3, tzinfo=timezone.utc)),
        Expense(id="e3", groupId="g1", description="Fuel", amount="20.25", payer="Carol",
                createdAt=datetime(2024, 5, 2, tzinfo=timezone.utc)),
    ]


@pytest.fixture
def trip_members():
    return ["Alice", "Bob", "Carol", "Dave"]


@pytest.fixture
def fake_splitwise(monkeypatch):
    """Patch the Splitwise client with an in-memory fake holding one group."""
    monkeypatch.setenv("CONSUMER_KEY", "key")
    monkeypatch.setenv("CONSUMER_SECRET", "secret")
    monkeypatch.setenv("API_KEY", "api-key")

    alice = FakeSplitwiseUser(1, "Alice")
    bob = FakeSplitwiseUser(2, "Bob")
    carol = FakeSplitwiseUser(3, "Carol")

    monkeypatch.setattr(FakeSplitwise, "groups", [FakeSplitwiseGroup(42, "Trip", [alice, bob, carol])])
    monkeypatch.setattr(FakeSplitwise, "expenses", {
        42: [
            FakeSplitwiseExpense(
                101, "Dinner",
                [FakeSplitwiseUser(1, "Alice", "90.0"), FakeSplitwiseUser(2, "Bob", "0.0")],
                created_at="2024-05-01T19:00:00Z",
            ),
            FakeSplitwiseExpense(
                102, "Tickets",
                [FakeSplitwiseUser(2, "Bob", "30.00"), FakeSplitwiseUser(3, "Carol", "15.00")],
                created_at="2024-05-02T10:00:00Z",
            ),
            FakeSplitwiseExpense(
                103, "Old taxi",
                [FakeSplitwiseUser(3, "Carol", "500.0")],
                created_at="2024-04-01T10:00:00Z",
                deleted_at="2024-04-02T10:00:00Z",
            ),
            FakeSplitwiseExpense(
                104, "Payment",
                [FakeSplitwiseUser(2, "Bob", "20.0")],
                created_at="2024-05-03T10:00:00Z",
                payment=True,
            ),
        ],
    })
    monkeypatch.setattr(splitwiseManager, "Splitwise", FakeSplitwise)
    return FakeSplitwise


@pytest.fixture
def api_client():
    """Return an API client; dependency overrides are cleared afterwards."""
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def override_splitwise():
    """Install a replacement for the Splitwise dependency."""
    def install(manager):
        app.dependency_overrides[get_splitwise_manager] = lambda: manager
        return manager
    yield install
    app.dependency_overrides.clear()
