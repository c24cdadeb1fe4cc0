"""Tests for the shared resource pool."""

import random

import pytest

from triage_sim.environment.resources import (
    AVAILABLE_WAIT_MAX_MINUTES,
    BASE_WAIT_MINUTES,
    QUEUE_WAIT_MINUTES_PER_PATIENT,
    ResourcePool,
)
from triage_sim.environment.schemas import ResourceType
from triage_sim.schemas import TriagePriority

DEFAULT_COUNTS = {
    ResourceType.TRAUMA_BAY: 2,
    ResourceType.URGENT_CARE: 3,
    ResourceType.GENERAL_BED: 3,
}


@pytest.fixture
def pool():
    return ResourcePool(DEFAULT_COUNTS, random.Random(0))


def test_pool_is_built_fully_available(pool):
    assert len(pool.resources) == 8
    assert pool.available_count == 8
    assert [r.id for r in pool.resources[:2]] == ["trauma_bay-1", "trauma_bay-2"]
    assert pool.utilization() == {"trauma_bay": 0.0, "urgent_care": 0.0, "general_bed": 0.0}


def test_resources_serve_their_priority_levels(pool):
    trauma = pool.resources[0]
    assert trauma.serves(TriagePriority.IMMEDIATE)
    assert not trauma.serves(TriagePriority.URGENT)
    assert pool.has_available(TriagePriority.LESS_URGENT)


def test_wait_with_free_resource_is_bounded(pool):
    for _ in range(20):
        assert 0 <= pool.estimate_wait(TriagePriority.NON_URGENT, queue_length=9) < AVAILABLE_WAIT_MAX_MINUTES


def test_wait_without_free_resource_grows_with_queue(pool):
    pool.occupy(1.0)
    assert pool.available_count == 0
    for priority in TriagePriority:
        expected = BASE_WAIT_MINUTES[priority] + 4 * QUEUE_WAIT_MINUTES_PER_PATIENT
        assert pool.estimate_wait(priority, queue_length=4) == expected


def test_recover_and_occupy_report_counts(pool):
    assert pool.occupy(0.0) == 0
    assert pool.occupy(1.0) == 8
    assert pool.utilization()["urgent_care"] == 1.0
    assert pool.recover(0.0) == 0
    assert pool.recover(1.0) == 8
    assert pool.available_count == 8


def test_reset_restores_availability(pool):
    pool.occupy(1.0)
    pool.reset()
    assert pool.available_count == 8
