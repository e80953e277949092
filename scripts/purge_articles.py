"""Delete every article (with its comments and tag links).

Hosted images are left alone; only database rows are removed.
"""
import asyncio
import argparse

from sqlalchemy import delete, func, select

from blogger.database import engine, async_session
from blogger.models import Article, Comment, article_tags


async def purge() -> int:
    async with async_session() as session:
        count = (await session.execute(select(func.count()).select_from(Article))).scalar_one()
        # Children first; SQLite does not enforce ON DELETE CASCADE by default.
        await session.execute(delete(Comment))
        await session.execute(delete(article_tags))
        await session.execute(delete(Article))
        await session.commit()
    await engine.dispose()
    return count


def main():
    parser = argparse.ArgumentParser(description="Delete all articles from the blog database")
    parser.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")
    args = parser.parse_args()

    if not args.yes:
        answer = input("Delete ALL articles? [y/N] ")
        if answer.strip().lower() != "y":
            print("Aborted")
            return

    deleted = asyncio.run(purge())
    print(f"Deleted {deleted} articles")


if __name__ == "__main__":
    main()
