import pytest

from classpoints.extensions import Database
from seed import seed


@pytest.mark.asyncio
async def test_seed_builds_a_demo_class(tmp_path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'demo.db'}")
    try:
        ledger = await seed(db)
        board = await ledger.get_leaderboard(1)
        assert [(e.student_name, e.total_points) for e in board] == [
            ("Kai Nguyen", 11),
            ("Mia Singh", 8),
            ("Noah Smith", -2),
        ]
        assert (await ledger.get_streak(board[0].student_id, 1)).current_streak == 3
        # Re-seeding starts from a clean database.
        ledger = await seed(db)
        assert len(await ledger.get_leaderboard(1)) == 3
    finally:
        await db.dispose()
