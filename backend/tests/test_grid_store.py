import threading
from datetime import datetime, timezone

import pytest

from blockclaim.services.grid import ClaimRecord, Coordinate, GridStore
from blockclaim.services.grid.errors import InvalidCoordinate


def test_first_claim_wins_second_sees_winner(grid):
    record, created = grid.try_claim(Coordinate(0, 0), 'a', 'Fox1', '#FF6B6B')
    assert created
    assert record.owner_id == 'a'

    again, created = grid.try_claim(Coordinate(0, 0), 'b', 'Bear2', '#4ECDC4')
    assert not created
    assert again == record
    assert grid.stats().total_claimed == 1


@pytest.mark.parametrize('x,y', [(50, 0), (0, 50), (-1, 0), (3.5, 2), (True, 0), ('1', 2)])
def test_invalid_coordinates_do_not_change_state(grid, x, y):
    with pytest.raises(InvalidCoordinate):
        grid.try_claim((x, y), 'a', 'Fox1', '#FF6B6B')
    assert grid.stats().total_claimed == 0
    assert grid.get_all() == []


def test_concurrent_claims_on_one_cell_have_single_winner(grid):
    contenders = 24
    barrier = threading.Barrier(contenders)
    results = [None] * contenders

    def attempt(i):
        barrier.wait()
        results[i] = grid.try_claim(Coordinate(7, 9), f"owner-{i}", f"Name{i}", '#000000')

    threads = [threading.Thread(target=attempt, args=(i,)) for i in range(contenders)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    winners = [record for record, created in results if created]
    assert len(winners) == 1
    # every loser observed the committed winner
    assert all(record == winners[0] for record, _ in results)
    assert grid.stats().total_claimed == 1


def test_concurrent_claims_on_distinct_cells_all_succeed(grid):
    def attempt(x):
        for y in range(50):
            grid.try_claim(Coordinate(x, y), f"owner-{x}", f"Name{x}", '#000000')

    threads = [threading.Thread(target=attempt, args=(x,)) for x in range(50)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    stats = grid.stats()
    assert stats.total_claimed == 2500
    assert stats.total_unclaimed == 0


def test_snapshot_is_not_affected_by_later_claims(grid):
    grid.try_claim(Coordinate(1, 1), 'a', 'Fox1', '#FF6B6B')
    snapshot = grid.get_all()
    grid.try_claim(Coordinate(2, 2), 'a', 'Fox1', '#FF6B6B')
    grid.rename_owner('a', 'Bear2')

    assert [r.coordinate for r in snapshot] == [Coordinate(1, 1)]
    assert snapshot[0].owner_name == 'Fox1'
    assert len(grid.get_all()) == 2


def test_rename_owner_touches_only_owned_records(grid):
    grid.try_claim(Coordinate(0, 0), 'a', 'Fox1', '#FF6B6B')
    grid.try_claim(Coordinate(0, 1), 'a', 'Fox1', '#FF6B6B')
    grid.try_claim(Coordinate(0, 2), 'b', 'Wolf3', '#4ECDC4')

    assert grid.rename_owner('a', 'Bear2') == 2
    names = {r.coordinate: r.owner_name for r in grid.get_all()}
    assert names == {
        Coordinate(0, 0): 'Bear2',
        Coordinate(0, 1): 'Bear2',
        Coordinate(0, 2): 'Wolf3',
    }
    # colour and timestamp are untouched
    assert grid.get((0, 0)).owner_color == '#FF6B6B'


def test_stats_counts_cells():
    grid = GridStore(4)
    grid.try_claim(Coordinate(3, 3), 'a', 'Fox1', '#FF6B6B')
    assert tuple(grid.stats()) == (16, 1, 15)


def test_coordinate_wire_key():
    assert Coordinate(3, 14).key == '3-14'


def _record(x, y, owner='a'):
    return ClaimRecord(Coordinate(x, y), owner, 'Fox1', '#FF6B6B', datetime(2025, 1, 1, tzinfo=timezone.utc))


def test_load_restores_records(grid):
    assert grid.load([_record(0, 0), _record(4, 5, owner='b')]) == 2
    _, created = grid.try_claim(Coordinate(4, 5), 'c', 'Hawk9', '#000000')
    assert not created
    assert grid.get((4, 5)).owner_id == 'b'


def test_load_skips_duplicate_and_out_of_range_rows(grid):
    records = [_record(60, 0), _record(1, 1), _record(1, 1, owner='b'), _record(2, 2, owner='b')]

    assert grid.load(records) == 2

    assert grid.get((1, 1)).owner_id == 'a'
    assert grid.get((2, 2)).owner_id == 'b'
    assert grid.stats().total_claimed == 2
    # rows after the bad ones are still held
    _, created = grid.try_claim(Coordinate(2, 2), 'c', 'Hawk9', '#000000')
    assert not created
