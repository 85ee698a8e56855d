from blockclaim.services.grid import Coordinate, compute_stats


def test_claim_scenario_builds_leaderboard(gateway):
    a = gateway.connect('conn-a')
    b = gateway.connect('conn-b')

    assert gateway.handle_claim_request('conn-a', 0, 0)
    assert gateway.get_stats()['totalClaimed'] == 1

    assert not gateway.handle_claim_request('conn-b', 0, 0)
    assert gateway.handle_claim_request('conn-b', 1, 1)

    stats = gateway.get_stats()
    assert stats['totalBlocks'] == 2500
    assert stats['totalClaimed'] == 2
    assert stats['totalUnclaimed'] == 2498
    assert stats['uniqueOwners'] == 2
    assert [(e['id'], e['blocksOwned']) for e in stats['leaderboard']] == [(a.id, 1), (b.id, 1)]
    assert stats['connectedUsers'] == 2
    assert {u['id']: u['blocksOwned'] for u in stats['users']} == {a.id: 1, b.id: 1}


def test_leaderboard_orders_by_claims_and_keeps_departed_owners(gateway):
    a = gateway.connect('conn-a')
    b = gateway.connect('conn-b')
    gateway.handle_claim_request('conn-a', 0, 0)
    for y in range(3):
        gateway.handle_claim_request('conn-b', 5, y)

    gateway.disconnect('conn-b')

    stats = gateway.get_stats()
    assert [(e['id'], e['blocksOwned']) for e in stats['leaderboard']] == [(b.id, 3), (a.id, 1)]
    assert stats['connectedUsers'] == 1
    assert [u['id'] for u in stats['users']] == [a.id]


def test_leaderboard_is_capped(grid, registry):
    for owner in range(15):
        grid.try_claim(Coordinate(owner, 0), f"owner-{owner}", f"Name{owner}", '#000000')

    stats = compute_stats(grid, registry)
    assert len(stats['leaderboard']) == 10
    assert stats['uniqueOwners'] == 15
    assert compute_stats(grid, registry, leaderboard_size=3)['leaderboard'][-1]['id'] == 'owner-2'


def test_leaderboard_uses_renamed_owner_name(gateway):
    a = gateway.connect('conn-a')
    gateway.handle_claim_request('conn-a', 2, 2)
    gateway.handle_rename_request('conn-a', 'Bear2')

    entry = gateway.get_stats()['leaderboard'][0]
    assert entry == {'id': a.id, 'name': 'Bear2', 'color': a.color, 'blocksOwned': 1}
