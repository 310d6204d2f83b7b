import os
import tempfile
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta
from pathlib import Path

# Keep the module-level engine away from the real data/ database.
os.environ.setdefault(
    "HANZI_SRS_DATABASE_URL",
    f"sqlite+aiosqlite:///{Path(tempfile.mkdtemp()) / 'hanzi_srs_test.db'}",
)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool  # noqa: E402

from backend.models import Base, Card, Folder, User  # noqa: E402

NOW = datetime(2024, 3, 15, 12, 0, 0)


class FixedClock:
    """Injectable clock that only moves when told to."""

    def __init__(self, now: datetime = NOW) -> None:
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest_asyncio.fixture
async def db_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    # One file per test; NullPool gives every session its own connection.
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def sessionmaker(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(sessionmaker: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    async with sessionmaker() as session:
        yield session


@pytest_asyncio.fixture
async def user(db: AsyncSession) -> User:
    user = User(email="learner@example.com")
    db.add(user)
    await db.commit()
    return user


VOCAB = [
    ("你好", "ni3 hao3", "nǐ hǎo", "hello", 1, 1),
    ("谢谢", "xie4 xie5", "xiè xie", "thank you", 1, 1),
    ("老师", "lao3 shi1", "lǎo shī", "teacher", 1, 2),
    ("学生", "xue2 sheng5", "xué sheng", "student", 1, 2),
    ("中国", "zhong1 guo2", "zhōng guó", "china", 2, 1),
]


async def make_cards(db: AsyncSession, user: User, count: int | None = None) -> list[Card]:
    """Insert cards in catalog order, one second apart."""
    cards = []
    for i, (hanzi, pinyin, display, english, part, lesson) in enumerate(VOCAB[:count]):
        card = Card(
            user_id=user.id,
            hanzi=hanzi,
            pinyin=pinyin,
            pinyin_display=display,
            english=english,
            textbook_part=part,
            lesson_number=lesson,
            created_at=NOW - timedelta(days=30) + timedelta(seconds=i),
        )
        db.add(card)
        cards.append(card)
    await db.commit()
    return cards


@pytest_asyncio.fixture
async def cards(db: AsyncSession, user: User) -> list[Card]:
    return await make_cards(db, user)


@pytest_asyncio.fixture
async def folder(db: AsyncSession, user: User, cards: list[Card]) -> Folder:
    folder = Folder(user_id=user.id, name="Greetings")
    folder.cards = [cards[0], cards[1]]
    db.add(folder)
    await db.commit()
    return folder
