"""Database seeder for local development of the Conduit API.

Goes through the service layer so counters, tag vocabulary and slugs are
produced exactly as they would be by real requests.
"""
import argparse
import asyncio
import random
import time

from conduit.database import Base, async_session, engine
from conduit.schemas import ArticleCreate, CommentCreate, UserCreate
from conduit.services import article_service, comment_service, user_service

TAGS = ["python", "fastapi", "postgresql", "docker", "kubernetes",
        "react", "typescript", "aws", "devops", "testing", "performance",
        "security", "microservices", "graphql", "rest-api"]


async def seed(small: bool = False):
    num_users = 10 if small else 50
    num_articles = 100 if small else 2000
    max_comments_per_article = 2 if small else 5

    print(f"Seeding: {num_users} users, {num_articles} articles")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        # Users
        user_ids = []
        usernames = []
        for i in range(num_users):
            user = await user_service.create_user(
                session,
                UserCreate(
                    username=f"user_{i:04d}",
                    email=f"user_{i:04d}@example.com",
                    bio=f"I am test user number {i}. I write about technology.",
                ),
            )
            user_ids.append(user["id"])
            usernames.append(user["username"])
        print(f"  Created {len(user_ids)} users")

        # Follows
        for user_id, own_name in zip(user_ids, usernames):
            for username in random.sample(usernames, k=min(5, len(usernames))):
                if username != own_name:
                    await user_service.follow_user(session, user_id, username)
        print("  Created follows")

        # Articles, favorites and comments
        slugs = []
        total_comments = 0
        for i in range(num_articles):
            topic = random.choice(TAGS)
            result = await article_service.create_article(
                session,
                random.choice(user_ids),
                ArticleCreate(
                    title=f"Article {i}: How to optimize {topic} applications",
                    description=f"A guide to optimizing {topic} applications for production.",
                    body=f"This is the full content of article {i}. " * 20,
                    tag_list=random.sample(TAGS, k=random.randint(1, 4)),
                ),
            )
            slug = result["article"]["slug"]
            slugs.append(slug)

            for fan in random.sample(user_ids, k=random.randint(0, 3)):
                await article_service.favorite_article(session, fan, slug)

            for _ in range(random.randint(0, max_comments_per_article)):
                await comment_service.add_comment(
                    session,
                    random.choice(user_ids),
                    slug,
                    CommentCreate(body="Great article! Very helpful for understanding the topic."),
                )
                total_comments += 1

            if (i + 1) % 500 == 0:
                await session.commit()
                print(f"  {i + 1} articles created")

        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Users: {num_users}")
    print(f"  Articles: {len(slugs)}")
    print(f"  Comments: {total_comments}")


def main():
    parser = argparse.ArgumentParser(description="Seed the Conduit database")
    parser.add_argument("--small", action="store_true", help="Use small dataset (100 articles)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
