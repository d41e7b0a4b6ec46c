from __future__ import annotations

from datetime import datetime
from types import SimpleNamespace

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from classpoints.extensions import Database
from classpoints.main import create_app
from classpoints.models import Classroom, Enrollment, User
from classpoints.services.ledger import BehaviourLedger
from classpoints.services.points import WindowPolicy
from classpoints.services.store import ConfigStore

# A Wednesday, midday UTC.
NOW = datetime(2026, 3, 11, 12, 0, 0)


class Clock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture(name="clock")
def clock_fixture():
    return Clock()


@pytest_asyncio.fixture(name="db")
async def db_fixture(tmp_path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'classpoints.db'}")
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture(name="ledger")
def ledger_fixture(db: Database, clock: Clock):
    return BehaviourLedger(db, policy=WindowPolicy(), clock=clock, notifications_enabled=True)


@pytest_asyncio.fixture(name="seeded")
async def seeded_fixture(db: Database):
    """One class, one teacher, three enrolled students (Ava, Ben, Cal in that order) and a catalog."""
    async with db.session() as session:
        teacher = User(first_name="Terry", last_name="Teacher", role="teacher")
        ava = User(first_name="Ava", last_name="Adams", role="student")
        ben = User(first_name="Ben", last_name="Brown", role="student")
        cal = User(first_name="Cal", last_name="Cole", role="student")
        outsider = User(first_name="Olly", last_name="Other", role="student")
        classroom = Classroom(name="Yr7 Science")
        other_class = Classroom(name="Yr8 Maths")
        session.add_all([teacher, ava, ben, cal, outsider, classroom, other_class])
        await session.flush()
        session.add_all([
            Enrollment(user_id=teacher.id, class_id=classroom.id),
            Enrollment(user_id=ava.id, class_id=classroom.id),
            Enrollment(user_id=ben.id, class_id=classroom.id),
            Enrollment(user_id=cal.id, class_id=classroom.id),
            Enrollment(user_id=outsider.id, class_id=other_class.id),
        ])

        config = ConfigStore(session)
        good = await config.add_category(classroom.id, "On Task", 5, "positive")
        bad = await config.add_category(classroom.id, "Off Task", -2, "negative")
        elsewhere = await config.add_category(other_class.id, "Homework", 3, "positive")
        ten = await config.add_badge(classroom.id, "Ten Pointer", "points_threshold", 10)
        helper = await config.add_badge(classroom.id, "Helper", "behavior_count", 3)
        captain = await config.add_badge(classroom.id, "Class Captain", "achievement", 0)
        reward = await config.add_reward(classroom.id, "Homework Pass", 10)
        cheap = await config.add_reward(classroom.id, "Sticker", 1)
        await session.commit()

    return SimpleNamespace(
        class_id=classroom.id,
        other_class_id=other_class.id,
        teacher_id=teacher.id,
        ava=ava.id,
        ben=ben.id,
        cal=cal.id,
        outsider=outsider.id,
        good=good.id,
        bad=bad.id,
        elsewhere=elsewhere.id,
        ten_badge=ten.id,
        helper_badge=helper.id,
        captain_badge=captain.id,
        reward=reward.id,
        cheap_reward=cheap.id,
    )


@pytest_asyncio.fixture(name="client")
async def client_fixture(ledger: BehaviourLedger):
    app = create_app(ledger)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


async def log_points(ledger: BehaviourLedger, seeded, student_id: int, category_id: int, times: int = 1, **kwargs):
    results = []
    for _ in range(times):
        results.append(await ledger.log_behaviour(student_id, seeded.class_id, category_id, seeded.teacher_id, **kwargs))
    return results
