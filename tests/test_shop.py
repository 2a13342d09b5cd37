import json
from datetime import datetime, timezone

import responses

from nebula_sync.errors import InsufficientCoins, NoCachedData, NotFound
from nebula_sync.models import CosmeticItem, InventoryItem, PlayerStats
from nebula_sync.services import purchase_cosmetic
from nebula_sync.storage.table import TableStore

from conftest import BASE, USER_ID

STATS_URL = f"{BASE}/rest/v1/player_stats"
INVENTORY_URL = f"{BASE}/rest/v1/inventory"
COSMETICS_URL = f"{BASE}/rest/v1/cosmetic_items"


def _seed_stats(paths, collected=100, spent=0) -> PlayerStats:
    stats = PlayerStats(
        user_id=USER_ID,
        total_coins_collected=collected,
        total_coins_spent=spent,
        updated_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )
    table = TableStore(paths.player_stats(USER_ID), PlayerStats)
    table.replace_all([stats])
    table.save()
    return stats


def _inventory(paths):
    return TableStore(paths.inventory(USER_ID), InventoryItem).load()


def test_insufficient_coins_changes_nothing(make_ctx, paths):
    _seed_stats(paths, collected=100, spent=0)

    result = purchase_cosmetic(make_ctx(online=False), "nova", price=150)

    assert isinstance(result.error, InsufficientCoins)
    assert not paths.inventory(USER_ID).exists()
    assert TableStore(paths.player_stats(USER_ID), PlayerStats).load()[0].total_coins_spent == 0


def test_no_stats_cannot_purchase(make_ctx):
    result = purchase_cosmetic(make_ctx(online=False), "nova", price=10)
    assert isinstance(result.error, NoCachedData)


def test_offline_purchase_debits_and_equips(make_ctx, paths):
    _seed_stats(paths, collected=100, spent=10)

    result = purchase_cosmetic(make_ctx(online=False), "nova", price=80)

    stats = result.unwrap()
    assert stats.total_coins_spent == 90
    assert stats.coin_balance == 10
    assert stats.actual_skin == "nova"
    assert [i.item_name for i in _inventory(paths)] == ["nova"]


def test_offline_price_from_cached_catalog(make_ctx, paths):
    _seed_stats(paths, collected=100)
    catalog = TableStore(paths.cosmetics(), CosmeticItem)
    catalog.replace_all([CosmeticItem(name="nova", price_coins=40, rarity="rare")])
    catalog.save()

    assert purchase_cosmetic(make_ctx(online=False), "nova").unwrap().total_coins_spent == 40
    assert isinstance(purchase_cosmetic(make_ctx(online=False), "ghost").error, NotFound)


@responses.activate
def test_online_purchase_uploads_item_and_stats(make_ctx, paths):
    local = _seed_stats(paths, collected=100)
    responses.add(
        responses.GET, COSMETICS_URL, json=[{"name": "nova", "price_coins": 60, "rarity": "epic"}]
    )
    responses.add(responses.GET, STATS_URL, json=[local.model_dump(mode="json")])
    responses.add(responses.POST, INVENTORY_URL, status=201)
    responses.add(responses.POST, STATS_URL, status=201)

    stats = purchase_cosmetic(make_ctx(online=True), "nova").unwrap()

    assert stats.total_coins_spent == 60
    assert stats.actual_skin == "nova"
    posts = {
        c.request.url.split("?")[0]: json.loads(c.request.body)
        for c in responses.calls
        if c.request.method == "POST"
    }
    assert posts[INVENTORY_URL]["item_name"] == "nova"
    assert posts[STATS_URL]["total_coins_spent"] == 60
    # Local copy carries the same acquisition time as the uploaded row.
    uploaded = InventoryItem.model_validate(posts[INVENTORY_URL])
    assert _inventory(paths)[0].acquired_at == uploaded.acquired_at


@responses.activate
def test_failed_upload_aborts_purchase(make_ctx, paths):
    local = _seed_stats(paths, collected=100)
    responses.add(responses.GET, STATS_URL, json=[local.model_dump(mode="json")])
    responses.add(responses.POST, INVENTORY_URL, status=500, body="down")

    result = purchase_cosmetic(make_ctx(online=True), "nova", price=30)

    assert not result.ok
    assert not paths.inventory(USER_ID).exists()
    assert TableStore(paths.player_stats(USER_ID), PlayerStats).load()[0].total_coins_spent == 0


@responses.activate
def test_catalog_refresh_caches_for_offline_use(make_ctx, paths):
    responses.add(
        responses.GET,
        COSMETICS_URL,
        json=[
            {"name": "nova", "price_coins": 60, "rarity": "epic"},
            {"name": "comet", "price_coins": 15},
        ],
    )

    online = make_ctx(online=True).cosmetics.refresh_catalog().unwrap()
    offline = make_ctx(online=False).cosmetics.refresh_catalog().unwrap()

    assert [c.name for c in online] == ["nova", "comet"]
    assert offline == online
    assert offline[1].rarity.value == "common"
