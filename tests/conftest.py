"""Shared fixtures."""

import json

import pytest

LEDGER = {
    "currency_code": "USD",
    "members": ["alice", "bob", "carol"],
    "expenses": [
        {
            "id": "e1",
            "description": "Dinner",
            "total": "90.00",
            "payer": "alice",
            "participants": ["alice", "bob", "carol"],
            "split_type": "equal",
        },
        {
            "id": "e2",
            "description": "Taxi",
            "total_cents": 3000,
            "payer": "bob",
            "participants": ["bob", "carol"],
            "split_type": "exact",
            "splits": [
                {"user_id": "bob", "amount_cents": 1000},
                {"user_id": "carol", "amount_cents": 2000},
            ],
        },
    ],
    "settlements": [
        {"id": "s1", "from_user": "carol", "to_user": "alice", "amount_cents": 1000}
    ],
}


@pytest.fixture
def ledger_data():
    """A fresh copy of the sample ledger."""
    return json.loads(json.dumps(LEDGER))


@pytest.fixture
def ledger_file(tmp_path, ledger_data):
    """The sample ledger written to disk.

    Balances: alice +5000, bob -1000, carol -4000.
    """
    path = tmp_path / "ledger.json"
    path.write_text(json.dumps(ledger_data))
    return path


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """Keep SPLITCENTS_* variables and .env files out of tests."""
    for name in (
        "SPLITCENTS_DEFAULT_CURRENCY",
        "SPLITCENTS_LEDGER_PATH",
        "SPLITCENTS_MIN_SETTLEMENT_CENTS",
        "SPLITCENTS_EXACT_AMOUNT_TOLERANCE_CENTS",
        "SPLITCENTS_PERCENTAGE_TOLERANCE",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
