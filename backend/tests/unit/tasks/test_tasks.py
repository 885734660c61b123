"""
Unit tests for the background seeding task.
"""
from fundraise.tasks.celery_app import celery_app
from fundraise.tasks.tasks import seed_known_wallets


def test_seed_task_is_scheduled():
    schedule = celery_app.conf.beat_schedule["seed-known-wallets"]
    assert schedule["task"] == "seed_known_wallets"
    assert seed_known_wallets.name == "seed_known_wallets"


def test_seed_known_wallets_task():
    """The task seeds the bundled file into the requested backends."""
    result = seed_known_wallets(["memory"])
    assert result["status"] == "success"
    assert result["wallets"] == 12
    assert result["associations"] == 7
