"""Database seeder: an admin, a handful of authors and their articles.

Images are not uploaded; articles get placeholder image metadata.  Every
seeded account shares the password given with ``--password``.
"""
import asyncio
import argparse
import random
import time
from datetime import datetime, timezone, timedelta

from blogger.database import engine, async_session, Base
from blogger.models import Article, ArticleStatus, Category, Comment, Tag, User
from blogger.security import hash_password

TAGS = ["python", "fastapi", "postgresql", "docker", "kubernetes",
        "react", "typescript", "aws", "devops", "testing", "performance",
        "security", "design", "career", "productivity", "rest-api"]

PLACEHOLDER_IMAGE = "https://res.cloudinary.com/demo/image/upload/sample.jpg"


async def seed(small: bool = False, password: str = "password123", reset: bool = False):
    num_authors = 5 if small else 25
    num_articles = 50 if small else 2000
    max_comments = 2 if small else 5

    print(f"Seeding: 1 admin, {num_authors} authors, {num_articles} articles")
    start = time.perf_counter()

    async with engine.begin() as conn:
        if reset:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    password_hash = hash_password(password)

    async with async_session() as session:
        tags = [Tag(name=name) for name in TAGS]
        session.add_all(tags)

        admin = User(
            name="Admin",
            email="admin@example.com",
            password_hash=password_hash,
            is_admin=True,
            avatar="",
            social_links={},
        )
        session.add(admin)

        authors = []
        for i in range(num_authors):
            author = User(
                name=f"Author {i}",
                email=f"author_{i:03d}@example.com",
                password_hash=password_hash,
                bio=f"Author number {i}. Writes about technology and life.",
                avatar="",
                social_links={"github": f"https://github.com/author{i}"},
            )
            session.add(author)
            authors.append(author)
        await session.flush()
        print(f"  Created {len(authors) + 1} users and {len(tags)} tags")

        reader_ids = [admin.id] + [a.id for a in authors]
        total_comments = 0
        batch_size = 500
        for batch_start in range(0, num_articles, batch_size):
            batch_end = min(batch_start + batch_size, num_articles)
            for i in range(batch_start, batch_end):
                created = datetime.now(timezone.utc) - timedelta(days=random.randint(0, 365))
                topic = random.choice(TAGS)
                draft = random.random() < 0.1
                liked_by = random.sample(reader_ids, k=random.randint(0, min(5, len(reader_ids))))
                article = Article(
                    title=f"Article {i}: notes on {topic}",
                    content=f"This is the full content of article {i} about {topic}. " * 20,
                    excerpt=f"A short guide to {topic}.",
                    category=random.choice(list(Category)).value,
                    status=(ArticleStatus.DRAFT if draft else ArticleStatus.PUBLISHED).value,
                    view_count=random.randint(0, 5000),
                    liked_by=liked_by,
                    like_count=len(liked_by),
                    image_original_name="placeholder.jpg",
                    image_url=PLACEHOLDER_IMAGE,
                    image_asset_id=f"seed/placeholder-{i}",
                    published_at=None if draft else created,
                    created_at=created,
                    author_id=random.choice(authors).id,
                )
                article.tags.extend(random.sample(tags, k=random.randint(1, 4)))
                for _ in range(random.randint(0, max_comments)):
                    article.comments.append(Comment(
                        text=f"Great read on {topic}!",
                        user_id=random.choice(reader_ids),
                        created_at=created + timedelta(hours=random.randint(1, 48)),
                    ))
                    total_comments += 1
                session.add(article)

            await session.flush()
            print(f"  Batch {batch_start}-{batch_end}: articles created")

        await session.commit()

    await engine.dispose()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Articles: {num_articles}")
    print(f"  Comments: {total_comments}")
    print(f"  Admin login: admin@example.com / {password}")


def main():
    parser = argparse.ArgumentParser(description="Seed the blog database")
    parser.add_argument("--small", action="store_true", help="Use a small dataset (50 articles)")
    parser.add_argument("--reset", action="store_true", help="Drop all tables before seeding")
    parser.add_argument("--password", default="password123", help="Password for every seeded user")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small, password=args.password, reset=args.reset))


if __name__ == "__main__":
    main()
