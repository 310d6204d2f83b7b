"""CLI interface for Hanzi SRS.

Usage:
    python -m hanzi_srs review --mode hanzi_to_pinyin      SRS review session
    python -m hanzi_srs review --policy mastery --lesson 3  Drill a lesson to mastery
    python -m hanzi_srs stats                               Show your statistics
    python -m hanzi_srs add 你好 "ni3 hao3" hello            Add a new card
    python -m hanzi_srs due                                 Cards due per mode
"""

import argparse
import asyncio
import logging
import random
import time

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from backend.config import utcnow
from backend.database import async_session, engine
from backend.models import Base
from backend.models.card import Card
from backend.models.card_progress import CardProgress
from backend.models.review_log import ReviewLog
from backend.models.user import User
from backend.srs.modes import SELECTABLE_MODES, StudyMode
from backend.srs.queue import QueueConfig
from backend.srs.session import SessionPolicy, finish_session, start_session
from backend.srs.sm2 import quality_from_correctness
from backend.srs.store import ProgressStore, StudyFilters

logger = logging.getLogger(__name__)

DEFAULT_EMAIL = "learner@localhost"


async def ensure_db(db_engine: AsyncEngine = engine) -> None:
    """Create tables if they don't exist."""
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def ensure_user(sessionmaker: async_sessionmaker[AsyncSession] = async_session) -> int:
    """Ensure there's a default user and return the ID."""
    async with sessionmaker() as db:
        stmt = select(User).where(User.email == DEFAULT_EMAIL)
        result = await db.execute(stmt)
        user = result.scalar_one_or_none()
        if user:
            return user.id

        user = User(email=DEFAULT_EMAIL)
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user.id


async def add_card(
    user_id: int,
    hanzi: str,
    pinyin: str,
    english: str,
    pinyin_display: str | None = None,
    textbook_part: int | None = None,
    lesson_number: int | None = None,
    sessionmaker: async_sessionmaker[AsyncSession] = async_session,
) -> Card | None:
    """Add a card unless the user already has one for the same hanzi."""
    async with sessionmaker() as db:
        existing = (
            await db.execute(
                select(Card).where(and_(Card.user_id == user_id, Card.hanzi == hanzi))
            )
        ).scalar_one_or_none()
        if existing:
            return None

        card = Card(
            user_id=user_id,
            hanzi=hanzi,
            pinyin=pinyin,
            pinyin_display=pinyin_display or pinyin,
            english=english,
            textbook_part=textbook_part,
            lesson_number=lesson_number,
        )
        db.add(card)
        await db.commit()
        await db.refresh(card)
        return card


async def due_counts(
    user_id: int,
    sessionmaker: async_sessionmaker[AsyncSession] = async_session,
) -> dict[StudyMode, tuple[int, int]]:
    """(due, new) card counts for every selectable mode."""
    now = utcnow()
    counts: dict[StudyMode, tuple[int, int]] = {}
    async with sessionmaker() as db:
        total = (
            await db.execute(select(func.count(Card.id)).where(Card.user_id == user_id))
        ).scalar() or 0
        for mode in SELECTABLE_MODES:
            due = (
                await db.execute(
                    select(func.count(CardProgress.id)).where(
                        and_(
                            CardProgress.user_id == user_id,
                            CardProgress.mode == mode,
                            CardProgress.next_review_date <= now,
                        )
                    )
                )
            ).scalar() or 0
            seen = (
                await db.execute(
                    select(func.count(CardProgress.id)).where(
                        and_(CardProgress.user_id == user_id, CardProgress.mode == mode)
                    )
                )
            ).scalar() or 0
            counts[mode] = (due, total - seen)
    return counts


async def cmd_review(args: argparse.Namespace) -> None:
    """Run an interactive study session."""
    await ensure_db()
    user_id = await ensure_user()
    mode = StudyMode(args.mode)
    policy = SessionPolicy(args.policy)
    filters = StudyFilters(
        textbook_part=args.part,
        lesson_number=args.lesson,
        folder_id=args.folder,
    )

    async with async_session() as db:
        store = ProgressStore(db)
        session = await start_session(
            store,
            user_id,
            mode,
            policy=policy,
            filters=filters,
            config=QueueConfig(max_reviews=args.max_cards, max_new=args.new_cards),
            rng=random.Random(args.seed) if args.seed is not None else None,
            sync_practice_reviews=args.sync,
        )

        if session.total == 0:
            print("\nNo cards to study. You're all caught up!")
            await finish_session(store, session)
            return

        print(f"\n  {policy.value.title()} session: {mode.value}")
        if session.queue is not None:
            print(
                f"  {len(session.queue.due_cards)} due + {len(session.queue.new_cards)} new"
                f" = {session.total} cards\n"
            )
        else:
            print(f"  {session.total} cards\n")
        print("  Type 'q' to quit\n")

        while (card := session.current_card) is not None:
            label = f"  [{session.remaining} left]"
            if policy is SessionPolicy.MASTERY:
                label += f" streak {session.current_streak}"
            print(label)
            print(f"  {mode.prompt_for(card)}")

            start_time = time.time()
            response = input("\n  Your answer: ").strip()
            time_ms = int((time.time() - start_time) * 1000)

            if response.lower() == "q":
                print("\n  Session ended early.")
                break

            correct = mode.check_answer(card, response)
            answer = await session.submit_answer(
                store, card.id, quality_from_correctness(correct), time_ms
            )

            if correct:
                print("  Correct!")
            else:
                print(f"  Incorrect. {card.hanzi}  {card.pinyin_display}  {card.english}")
            if answer.review is not None:
                print(f"  Next review in {answer.review.result.interval_days} days\n")
            elif answer.retired and policy is SessionPolicy.MASTERY:
                print("  Mastered!\n")
            else:
                print()

        await finish_session(store, session)

    s = session.stats
    accuracy = s.correct / s.cards_reviewed * 100 if s.cards_reviewed else 0
    print("\n  Session Complete!" if session.is_complete else "")
    print(f"  Reviewed: {s.cards_reviewed}  Correct: {s.correct}  Accuracy: {accuracy:.0f}%\n")


async def cmd_stats(args: argparse.Namespace) -> None:
    """Show user statistics."""
    await ensure_db()
    user_id = await ensure_user()

    async with async_session() as db:
        total = (
            await db.execute(select(func.count(Card.id)).where(Card.user_id == user_id))
        ).scalar() or 0
        reviews = (
            await db.execute(select(func.count(ReviewLog.id)).where(ReviewLog.user_id == user_id))
        ).scalar() or 0
        correct = (
            await db.execute(
                select(func.count(ReviewLog.id)).where(
                    and_(ReviewLog.user_id == user_id, ReviewLog.was_correct.is_(True))
                )
            )
        ).scalar() or 0

    accuracy = f"{correct / reviews * 100:.0f}%" if reviews else "-"
    print("\n  Hanzi SRS Statistics")
    print(f"  {'Total cards:':<20} {total}")
    print(f"  {'Total reviews:':<20} {reviews}")
    print(f"  {'Accuracy:':<20} {accuracy}")
    print()


async def cmd_add(args: argparse.Namespace) -> None:
    """Add a new card."""
    await ensure_db()
    user_id = await ensure_user()

    card = await add_card(
        user_id,
        args.hanzi,
        args.pinyin,
        args.english,
        pinyin_display=args.display,
        textbook_part=args.part,
        lesson_number=args.lesson,
    )
    if card is None:
        print(f"  '{args.hanzi}' already exists.")
        return
    print(f"  Added {card.hanzi}  {card.pinyin_display}  {card.english} (ready to study)")


async def cmd_due(args: argparse.Namespace) -> None:
    """Show how many cards are due per mode."""
    await ensure_db()
    user_id = await ensure_user()

    for mode, (due, new) in (await due_counts(user_id)).items():
        print(f"  {mode.value:<20} {due} due, {new} new")


def main() -> None:
    """Entry point for the Hanzi SRS CLI application."""
    parser = argparse.ArgumentParser(
        prog="hanzi_srs",
        description="Hanzi SRS flashcards",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # review
    review_parser = subparsers.add_parser("review", help="Start a study session")
    review_parser.add_argument(
        "--mode",
        choices=[m.value for m in SELECTABLE_MODES],
        default=StudyMode.HANZI_TO_PINYIN.value,
    )
    review_parser.add_argument(
        "--policy", choices=[p.value for p in SessionPolicy], default=SessionPolicy.SRS.value
    )
    review_parser.add_argument("--max-cards", type=int, default=20, help="Max due cards")
    review_parser.add_argument("--new-cards", type=int, default=10, help="Max new cards")
    review_parser.add_argument("--part", type=int, help="Textbook part")
    review_parser.add_argument("--lesson", type=int, help="Lesson number")
    review_parser.add_argument("--folder", type=int, help="Folder id")
    review_parser.add_argument("--seed", type=int, help="Shuffle seed for quick/mastery")
    review_parser.add_argument(
        "--sync",
        action="store_true",
        default=None,
        help="Also schedule quick/mastery answers with SM-2",
    )

    # stats
    subparsers.add_parser("stats", help="Show your statistics")

    # add
    add_parser = subparsers.add_parser("add", help="Add a new card")
    add_parser.add_argument("hanzi", help="Characters")
    add_parser.add_argument("pinyin", help="Pinyin with tone numbers, e.g. ni3 hao3")
    add_parser.add_argument("english", help="English meaning")
    add_parser.add_argument("-d", "--display", help="Pinyin with tone marks")
    add_parser.add_argument("--part", type=int, help="Textbook part")
    add_parser.add_argument("--lesson", type=int, help="Lesson number")

    # due
    subparsers.add_parser("due", help="Show cards due for review")

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    if not args.command:
        parser.print_help()
        return

    cmd_map = {
        "review": cmd_review,
        "stats": cmd_stats,
        "add": cmd_add,
        "due": cmd_due,
    }

    asyncio.run(cmd_map[args.command](args))


if __name__ == "__main__":
    main()
