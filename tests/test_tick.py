import pytest

from auctionhouse.models.errors import LedgerError
from auctionhouse.models.operations.auctions import auction_get, auction_get_current, auction_get_next
from auctionhouse.models.operations.inventory import inventory_get_player_item, inventory_set_player_item
from auctionhouse.models.operations.lifecycle import auction_enqueue, auction_place_bid, auction_tick


@pytest.fixture
async def seller(make_player):
    return await make_player("sam", coins=0, inventory={"carrot": 10, "bread": 4})


class TestAuctionTick:
    async def test_idle_lane(self):
        assert await auction_tick() == {"settled": None, "activated": None, "voided": None}

    async def test_runs_queue_in_order(self, seller, make_player, clock, refresh):
        bidder = await make_player("alice", coins=50)
        first = (await auction_enqueue(seller, {"item": "carrot", "quantity": 2, "min_bid": 1})).auction
        second = (await auction_enqueue(seller, {"item": "bread", "quantity": 4, "min_bid": 1})).auction

        assert (await auction_tick(20))["activated"] == first.id
        # Nothing to do while the first auction runs
        assert await auction_tick(20) == {"settled": None, "activated": None, "voided": None}

        await auction_place_bid(bidder, 12)
        clock.advance(21)

        summary = await auction_tick(20)
        assert summary == {"settled": first.id, "activated": second.id, "voided": None}
        assert (await auction_get(first.id)).data.done
        assert (await refresh(seller)).data.coins == 12
        assert (await refresh(bidder)).data.coins == 38

        clock.advance(21)
        summary = await auction_tick(20)
        assert summary["settled"] == second.id
        assert summary["activated"] is None

    async def test_voids_and_moves_on(self, seller, clock):
        await auction_enqueue(seller, {"item": "bread", "quantity": 4, "min_bid": 1})
        await inventory_set_player_item(seller.id, "bread", 1)

        summary = await auction_tick()

        assert summary["voided"] is not None
        assert (await auction_get(summary["voided"])).data.done

    async def test_unsettled_auction_blocks_next_activation(self, seller, make_player, clock, refresh):
        bidder = await make_player("alice", coins=50)
        await auction_enqueue(seller, {"item": "carrot", "quantity": 2, "min_bid": 1})
        await auction_enqueue(seller, {"item": "bread", "quantity": 1, "min_bid": 1})
        await auction_tick(20)
        await auction_place_bid(bidder, 10)
        # Seller gives the carrots away before the hammer falls
        await inventory_set_player_item(seller.id, "carrot", 0)
        clock.advance(21)

        with pytest.raises(LedgerError):
            await auction_tick(20)
        # The failed settlement keeps the lane closed and moves nothing
        with pytest.raises(LedgerError):
            await auction_tick(20)
        assert await auction_get_current() is None
        assert (await auction_get_next()).data.item == "bread"
        assert (await refresh(bidder)).data.coins == 50
        assert (await refresh(seller)).data.coins == 0
        assert await inventory_get_player_item(bidder.id, "carrot") is None
