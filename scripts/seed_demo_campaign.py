#!/usr/bin/env python
"""Seed a demo onboarding campaign for local development.

Creates a cadet user, the global rank ladder and a campaign with one mission
of every confirmation type, linked as:

    Welcome -> Paperwork, Office tour, Meet buddy -> First week done

Usage:
    uv run alembic upgrade head
    uv run python scripts/seed_demo_campaign.py

The script is idempotent - running it multiple times is safe.
"""

import asyncio
import sys
from pathlib import Path

# Add the src directory to the path so we can import missionflow
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sqlalchemy import select, text

from missionflow.db.models import (
    Campaign,
    Competency,
    Mission,
    MissionCompetency,
    MissionDependency,
    Rank,
    User,
)
from missionflow.db.repositories import CampaignRepository
from missionflow.db.session import async_session_factory, get_session
from missionflow.progression import validate_campaign

DEMO_USER_ID = 1
DEMO_USER_EMAIL = "cadet@missionflow.local"
DEMO_USER_USERNAME = "DemoCadet"
DEMO_CAMPAIGN_SLUG = "onboarding-demo"

# name, description, confirmation type, experience, currency, teamwork points
DEMO_MISSIONS = [
    ("Welcome", "Read the onboarding handbook", "AUTO", 50, 10, 0),
    ("Paperwork", "Upload your signed contract", "FILE_CHECK", 100, 20, 0),
    ("Office tour", "Join the office tour and scan the QR code", "QR_SCAN", 80, 15, 5),
    ("Meet buddy", "Have a coffee with your onboarding buddy", "MANUAL_REVIEW", 60, 10, 10),
    ("First week done", "Wrap up your first week", "AUTO", 200, 50, 0),
]
DEMO_DEPENDENCIES = [
    ("Welcome", "Paperwork"),
    ("Welcome", "Office tour"),
    ("Welcome", "Meet buddy"),
    ("Paperwork", "First week done"),
    ("Office tour", "First week done"),
    ("Meet buddy", "First week done"),
]

# level, name, title, experience, missions, competencies, currency
DEMO_RANKS = [
    (1, "Recruit", "Just arrived", 0, 0, {}, 0),
    (2, "Cadet", "Finding their feet", 150, 2, {}, 25),
    (3, "Officer", "Part of the crew", 400, 5, {"Teamwork": 10}, 100),
]


async def seed_demo_user() -> None:
    """Create the demo cadet if missing."""
    async with async_session_factory() as session:
        existing = await session.get(User, DEMO_USER_ID)
        if existing:
            print(f"Demo user already exists: {existing.username} (ID: {existing.id})")
            return

        session.add(
            User(
                id=DEMO_USER_ID,
                email=DEMO_USER_EMAIL,
                username=DEMO_USER_USERNAME,
                role="cadet",
            )
        )
        await session.commit()
        print(f"Created demo user {DEMO_USER_USERNAME} (ID: {DEMO_USER_ID})")

        # Keep the sequence ahead of the manually inserted ID
        await session.execute(
            text(
                "SELECT setval('users_id_seq', "
                "GREATEST(COALESCE((SELECT MAX(id) FROM users), 0), 1))"
            )
        )
        await session.commit()


async def seed_global_ranks() -> None:
    """Create the global rank ladder if no global ranks exist."""
    async with get_session() as session:
        existing = await session.scalar(
            select(Rank.id).where(Rank.campaign_id.is_(None)).limit(1)
        )
        if existing:
            print("Global ranks already exist")
            return

        for level, name, title, xp, missions, competencies, currency in DEMO_RANKS:
            session.add(
                Rank(
                    level=level,
                    name=name,
                    title=title,
                    min_experience=xp,
                    min_missions=missions,
                    required_competencies=competencies,
                    currency_reward=currency,
                )
            )
        await session.commit()
        print(f"Created {len(DEMO_RANKS)} global ranks")


async def seed_demo_campaign() -> int:
    """Create the demo campaign if missing.

    Returns:
        The campaign ID
    """
    async with get_session() as session:
        existing = await session.scalar(
            select(Campaign).where(Campaign.slug == DEMO_CAMPAIGN_SLUG)
        )
        if existing:
            print(f"Demo campaign already exists: {existing.name} (ID: {existing.id})")
            return existing.id

        teamwork = await session.scalar(select(Competency).where(Competency.name == "Teamwork"))
        if teamwork is None:
            teamwork = Competency(name="Teamwork")
            session.add(teamwork)

        campaign = Campaign(
            name="Onboarding demo",
            slug=DEMO_CAMPAIGN_SLUG,
            theme={"experienceLabel": "XP", "currencyLabel": "mana"},
        )
        session.add(campaign)
        await session.flush()

        missions = {}
        for position, (name, description, confirmation, xp, currency, points) in enumerate(
            DEMO_MISSIONS
        ):
            mission = Mission(
                campaign_id=campaign.id,
                name=name,
                description=description,
                confirmation_type=confirmation,
                experience_reward=xp,
                currency_reward=currency,
                position=position,
                competencies=(
                    [MissionCompetency(competency_id=teamwork.id, points=points)] if points else []
                ),
            )
            session.add(mission)
            missions[name] = mission
        await session.flush()

        for source, target in DEMO_DEPENDENCIES:
            session.add(
                MissionDependency(
                    source_mission_id=missions[source].id,
                    target_mission_id=missions[target].id,
                )
            )
        await session.commit()

        print(f"Created demo campaign {campaign.name} (ID: {campaign.id})")
        for name, mission in missions.items():
            print(f"  {mission.id:>4}  {name} [{mission.confirmation_type}]")
        return campaign.id


async def report_health(campaign_id: int) -> None:
    """Print the campaign's structure health."""
    async with async_session_factory() as session:
        repo = CampaignRepository(session)
        report = validate_campaign(
            await repo.list_missions(campaign_id),
            await repo.list_dependencies(campaign_id),
        )
    print(f"Health score: {report.health_score} ({len(report.issues)} issues)")
    for issue in report.issues:
        print(f"  [{issue.severity.value}] {issue.message}")


async def main() -> None:
    """Main entry point."""
    print("Seeding demo data...")
    print()

    try:
        await seed_demo_user()
        await seed_global_ranks()
        campaign_id = await seed_demo_campaign()
        await report_health(campaign_id)
        print()
        print("Done! Join the campaign with:")
        print(
            f"  curl -X POST localhost:8000/api/campaigns/{campaign_id}/initialize-user "
            f"-H 'Content-Type: application/json' -d '{{\"userId\": {DEMO_USER_ID}}}'"
        )
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
