from datetime import datetime, timedelta, timezone

import pytest
from couchbase.exceptions import CASMismatchException

from auctionhouse.models.entities.couchbase.auctions import AuctionData
from auctionhouse.models.operations.auctions import (
    auction_delete,
    auction_get,
    auction_get_current,
    auction_get_latest,
    auction_get_next,
    auction_save,
    lane_get,
)
from auctionhouse.models.operations.inventory import inventory_set_player_item
from auctionhouse.models.operations.lifecycle import auction_activate, auction_settle


def _listing(**overrides):
    fields = dict(seller_id="s1", seller_name="sam", item="bread", quantity=1, min_bid=0)
    fields.update(overrides)
    return AuctionData(**fields)


@pytest.fixture(autouse=True)
async def stocked_seller():
    await inventory_set_player_item("s1", "bread", 5)
    await inventory_set_player_item("s1", "carrot", 5)


class TestRecords:
    async def test_save_new_data_queues_it(self):
        auction = await auction_save(_listing())

        assert (await auction_get(auction.id)).data.item == "bread"
        assert (await auction_get_next()).id == auction.id
        assert [e.auction_id for e in (await lane_get()).data.queue] == [auction.id]

    async def test_save_stale_copy_is_rejected(self):
        auction = await auction_save(_listing())
        stale = await auction_get(auction.id)
        fresh = await auction_get(auction.id)

        fresh.data.min_bid = 3
        await auction_save(fresh)
        stale.data.min_bid = 7
        with pytest.raises(CASMismatchException):
            await auction_save(stale)

        assert (await auction_get(auction.id)).data.min_bid == 3

    async def test_delete_removes_from_queue(self):
        first = await auction_save(_listing())
        second = await auction_save(_listing(item="carrot"))

        assert await auction_delete(first.id)

        assert await auction_get(first.id) is None
        assert (await auction_get_next()).id == second.id
        assert not await auction_delete(first.id)

    async def test_unknown_id(self):
        assert await auction_get("nope") is None

    async def test_timestamps_stored_as_utc(self, cluster, clock):
        clock.now = datetime(2026, 3, 14, 14, 0, tzinfo=timezone(timedelta(hours=2)))
        auction = await auction_save(_listing(
            start_time=datetime(2026, 3, 14, 9, 30, tzinfo=timezone(timedelta(hours=-5))),
        ))

        raw = cluster.collection("auctions").raw(auction.id)
        assert raw["start_time"] == "2026-03-14T14:30:00Z"
        assert raw["created_at"] == "2026-03-14T12:00:00Z"
        loaded = await auction_get(auction.id)
        assert loaded.data.start_time.utcoffset() == timedelta(0)

    async def test_naive_timestamps_are_taken_as_utc(self):
        data = _listing(end_time=datetime(2026, 3, 14, 12, 0))
        assert data.end_time == datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)


class TestLanePredicates:
    async def test_empty_store(self):
        assert await auction_get_current() is None
        assert await auction_get_next() is None
        assert await auction_get_latest() is None

    async def test_current_then_latest(self, clock):
        first = await auction_save(_listing())
        await auction_activate(30)

        assert (await auction_get_current()).id == first.id
        assert await auction_get_latest() is None

        clock.advance(30)
        # end_time == now still counts as running
        assert (await auction_get_current()).id == first.id

        clock.advance(1)
        assert await auction_get_current() is None
        latest = await auction_get_latest()
        assert latest.id == first.id
        assert not latest.data.done

    async def test_latest_is_previous_while_next_runs(self, clock):
        first = await auction_save(_listing())
        second = await auction_save(_listing(item="carrot"))
        await auction_activate(30)
        clock.advance(31)
        await auction_settle(first)
        await auction_activate(30)

        assert (await auction_get_current()).id == second.id
        assert (await auction_get_latest()).id == first.id
