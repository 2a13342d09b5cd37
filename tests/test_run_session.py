import json
from datetime import datetime, timezone

import responses

from nebula_sync.models import PlayerStats
from nebula_sync.services import apply_run, finish_run
from nebula_sync.storage.table import TableStore

from conftest import BASE, USER_ID

STATS_URL = f"{BASE}/rest/v1/player_stats"
DAILY_URL = f"{BASE}/rest/v1/daily_challenges"
COMPLETED_URL = f"{BASE}/rest/v1/completed_challenges"


def _challenge(cid, kind, needed, reward):
    return {
        "id": cid,
        "challenge_date": "2025-03-01",
        "description": "",
        "reward_coins": reward,
        "amount_needed": needed,
        "challenge_type": kind,
    }


def _local_stats(paths):
    return TableStore(paths.player_stats(USER_ID), PlayerStats).load()[0]


def test_apply_run_accumulates_and_keeps_bests():
    start = PlayerStats(
        user_id=USER_ID,
        best_distance=1000,
        best_coins_earned=10,
        total_sessions=2,
        total_distance=1500,
        total_coins_collected=30,
        updated_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )
    updated = apply_run(start, USER_ID, distance=600, coins=25, challenges_done=2)

    assert updated.total_sessions == 3
    assert updated.total_distance == 2100
    assert updated.total_coins_collected == 55
    assert updated.best_distance == 1000
    assert updated.best_coins_earned == 25
    assert updated.challenges_completed == 2
    assert updated.updated_at > start.updated_at
    # Input record is left alone.
    assert start.total_sessions == 2


def test_apply_run_starts_from_zero_record():
    updated = apply_run(None, USER_ID, distance=300, coins=5, challenges_done=0, skin="nova")
    assert updated.user_id == USER_ID
    assert updated.total_sessions == 1
    assert updated.best_distance == 300
    assert updated.actual_skin == "nova"


@responses.activate
def test_walk_challenge_completes_once_and_rewards_coins(make_ctx, paths):
    responses.add(
        responses.GET,
        DAILY_URL,
        json=[_challenge(1, "WALK", 500, 50), _challenge(2, "COINS", 100, 75)],
    )
    responses.add(responses.GET, COMPLETED_URL, json=[])
    responses.add(responses.POST, COMPLETED_URL, status=201)
    responses.add(responses.POST, STATS_URL, status=201)

    outcome = finish_run(make_ctx(online=True), 600, 20).unwrap()

    assert outcome.completed_ids == [1]
    assert outcome.reward_coins == 50
    assert outcome.total_coins == 70
    assert outcome.stats.total_coins_collected == 70
    assert outcome.stats.challenges_completed == 1
    assert outcome.stats.best_distance == 600
    posted = [json.loads(c.request.body) for c in responses.calls if c.request.method == "POST"]
    assert posted[0]["challenge_id"] == 1
    assert posted[1]["total_coins_collected"] == 70

    # Next evaluation, offline: the completed challenge is gone from the cache.
    again = finish_run(make_ctx(online=False), 600, 0).unwrap()
    assert again.completed_ids == []
    assert again.reward_coins == 0
    assert _local_stats(paths).total_sessions == 2
    assert _local_stats(paths).total_coins_collected == 70


def test_offline_run_uses_template_and_queues_completion(make_ctx, paths):
    outcome = finish_run(make_ctx(online=False), 650, 0).unwrap()

    assert outcome.completed_ids == [1]
    assert outcome.reward_coins == 50
    assert TableStore(paths.completed_challenges(USER_ID), int).load() == [1]

    stats = _local_stats(paths)
    assert stats.total_coins_collected == 50
    assert stats.total_sessions == 1

    # The queued id is known locally, so the same run does not pay twice.
    again = finish_run(make_ctx(online=False), 650, 0).unwrap()
    assert again.reward_coins == 0
    assert _local_stats(paths).challenges_completed == 1


@responses.activate
def test_push_failure_still_returns_outcome(make_ctx, paths):
    responses.add(responses.GET, DAILY_URL, json=[])
    responses.add(responses.GET, COMPLETED_URL, json=[])
    responses.add(responses.POST, COMPLETED_URL, status=201)
    responses.add(responses.POST, STATS_URL, status=500, body="down")

    result = finish_run(make_ctx(online=True), 100, 3)

    assert result.ok
    assert result.value.stats.total_distance == 100
    assert _local_stats(paths).total_distance == 100


@responses.activate
def test_online_completion_not_paid_again_when_completed_set_fails(make_ctx, paths):
    walk = _challenge(1, "WALK", 500, 50)
    responses.add(responses.GET, DAILY_URL, json=[walk])
    responses.add(responses.GET, COMPLETED_URL, json=[])
    responses.add(responses.POST, COMPLETED_URL, status=201)
    responses.add(responses.POST, STATS_URL, status=201)

    first = finish_run(make_ctx(online=True), 600, 0).unwrap()
    assert first.completed_ids == [1]

    # Token expired: public challenge list still loads, everything user-scoped is 401.
    responses.reset()
    responses.add(responses.GET, DAILY_URL, json=[walk])
    responses.add(responses.GET, COMPLETED_URL, status=401, body="JWT expired")
    responses.add(responses.GET, STATS_URL, status=401, body="JWT expired")
    responses.add(responses.PATCH, STATS_URL, status=401, body="JWT expired")
    responses.add(responses.POST, STATS_URL, status=401, body="JWT expired")

    second = finish_run(make_ctx(online=True), 600, 0).unwrap()

    assert second.completed_ids == []
    assert second.reward_coins == 0
    assert _local_stats(paths).challenges_completed == 1
    assert _local_stats(paths).total_coins_collected == 50
    assert not any(
        c.request.method == "POST" and c.request.url.startswith(COMPLETED_URL) for c in responses.calls
    )
