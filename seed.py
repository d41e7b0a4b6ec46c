"""Seed a demo class: staff, students, a category/badge/reward catalog and some behaviour."""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import timedelta

from classpoints.config import settings
from classpoints.extensions import Database
from classpoints.main import configure_logging
from classpoints.models import Classroom, Enrollment, User
from classpoints.services.ledger import BehaviourLedger
from classpoints.services.store import ConfigStore
from classpoints.utils import utcnow

log = logging.getLogger("seed")


async def seed(db: Database, reset: bool = True) -> BehaviourLedger:
    if reset:
        await db.drop_all()
    await db.create_all()

    async with db.session() as session:
        # Staff
        teacher = User(email="teacher@example.com", first_name="Terry", last_name="Teacher", role="teacher")

        # Students
        s1 = User(email="s1@example.com", first_name="Kai", last_name="Nguyen", role="student")
        s2 = User(email="s2@example.com", first_name="Mia", last_name="Singh", role="student")
        s3 = User(email="s3@example.com", first_name="Noah", last_name="Smith", role="student")

        c1 = Classroom(name="Yr6 Digital Tech")
        session.add_all([teacher, s1, s2, s3, c1])
        await session.flush()
        session.add_all([Enrollment(user_id=u.id, class_id=c1.id) for u in (teacher, s1, s2, s3)])

        config = ConfigStore(session)
        helping = await config.add_category(c1.id, "Helping Others", 5, "positive", icon="🤝")
        focus = await config.add_category(c1.id, "Great Focus", 3, "positive", icon="🎯")
        calling_out = await config.add_category(c1.id, "Calling Out", -2, "negative", icon="📢")
        await config.add_badge(c1.id, "Ten Pointer", "points_threshold", 10, description="Reach 10 points.")
        await config.add_badge(c1.id, "Helper", "behavior_count", 3, description="Three good behaviours.")
        await config.add_badge(c1.id, "Class Captain", "achievement", 0)
        await config.add_reward(c1.id, "Homework Pass", 10)
        await config.add_reward(c1.id, "Choose the Music", 5)
        await session.commit()

    ledger = BehaviourLedger(db)
    now = utcnow()
    plan = [
        (s1, helping, 2), (s1, helping, 1), (s1, focus, 0), (s1, calling_out, 0),
        (s2, focus, 1), (s2, helping, 0),
        (s3, calling_out, 0),
    ]
    for student, category, days_ago in plan:
        await ledger.log_behaviour(
            student.id, c1.id, category.id, teacher.id, created_at=now - timedelta(days=days_ago)
        )
    return ledger


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--database-url", default=settings.DATABASE_URL)
    parser.add_argument("--keep", action="store_true", help="Do not drop existing tables first")
    args = parser.parse_args()

    configure_logging()

    async def run() -> None:
        db = Database(args.database_url, echo=settings.SQL_ECHO)
        try:
            await seed(db, reset=not args.keep)
        finally:
            await db.dispose()

    asyncio.run(run())
    log.info("Database seeded at %s", args.database_url)


if __name__ == "__main__":
    main()
