"""Tests for CLI commands (non-interactive paths)."""

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from backend.srs.modes import SELECTABLE_MODES, StudyMode
from backend.srs.review import submit_review
from backend.srs.store import ProgressStore
from hanzi_srs.__main__ import add_card, due_counts, ensure_db, ensure_user


@pytest.mark.asyncio
async def test_ensure_db(db_engine: AsyncEngine) -> None:
    """Database tables can be created twice."""
    await ensure_db(db_engine)
    await ensure_db(db_engine)


@pytest.mark.asyncio
async def test_ensure_user(sessionmaker: async_sessionmaker[AsyncSession]) -> None:
    """Default user is created on first call."""
    user_id = await ensure_user(sessionmaker)
    assert user_id >= 1

    # Second call returns same ID
    user_id2 = await ensure_user(sessionmaker)
    assert user_id2 == user_id


@pytest.mark.asyncio
async def test_add_card_skips_duplicates(sessionmaker: async_sessionmaker[AsyncSession]) -> None:
    user_id = await ensure_user(sessionmaker)
    card = await add_card(user_id, "朋友", "peng2 you5", "friend", sessionmaker=sessionmaker)
    assert card is not None
    assert card.pinyin_display == "peng2 you5"
    assert await add_card(user_id, "朋友", "peng2 you5", "friend", sessionmaker=sessionmaker) is None


@pytest.mark.asyncio
async def test_due_counts(sessionmaker: async_sessionmaker[AsyncSession]) -> None:
    user_id = await ensure_user(sessionmaker)
    card = await add_card(user_id, "书", "shu1", "book", sessionmaker=sessionmaker)
    await add_card(user_id, "水", "shui3", "water", sessionmaker=sessionmaker)
    async with sessionmaker() as db:
        await submit_review(ProgressStore(db), user_id, card.id, StudyMode.HANZI_TO_PINYIN, 2, 900)

    counts = await due_counts(user_id, sessionmaker=sessionmaker)

    assert set(counts) == set(SELECTABLE_MODES)
    assert counts[StudyMode.HANZI_TO_PINYIN] == (0, 1)
    assert counts[StudyMode.HANZI_TO_ENGLISH] == (0, 2)
