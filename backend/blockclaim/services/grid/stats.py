from .identities import IdentityRegistry
from .store import GridStore


def compute_stats(grid: GridStore, registry: IdentityRegistry, leaderboard_size: int = 10) -> dict:
    """Summarize the grid and the connected users.

    The leaderboard is built from claim records so owners who have left keep
    their place; ties stay in order of each owner's first claim.
    """
    records = sorted(grid.get_all(), key=lambda r: r.claimed_at)
    owners = {}
    for record in records:
        entry = owners.get(record.owner_id)
        if entry is None:
            owners[record.owner_id] = {
                'id': record.owner_id,
                'name': record.owner_name,
                'color': record.owner_color,
                'blocksOwned': 1,
            }
        else:
            entry['blocksOwned'] += 1
            entry['name'] = record.owner_name

    leaderboard = sorted(owners.values(), key=lambda e: e['blocksOwned'], reverse=True)
    grid_stats = grid.stats()
    users = registry.list()
    return {
        'totalBlocks': grid_stats.total_cells,
        'totalClaimed': len(records),
        'totalUnclaimed': grid_stats.total_cells - len(records),
        'uniqueOwners': len(owners),
        'leaderboard': leaderboard[:leaderboard_size],
        'connectedUsers': len(users),
        'users': [
            {'id': u.id, 'name': u.name, 'color': u.color, 'blocksOwned': u.claim_count}
            for u in users
        ],
    }
