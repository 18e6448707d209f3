#!/usr/bin/env python3
"""
Script to verify the GitHub connection and the team data independently
"""

import os
import sys
import asyncio
import logging
from dotenv import load_dotenv

from config_adapter import fetch_team_data, load_team_data, parse_team_data
from errors import TeamSyncError
from github_adapter import DEFAULT_API_URL, GitHubClient

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

load_dotenv()


def _client() -> GitHubClient:
    return GitHubClient(
        os.getenv("GITHUB_TOKEN", ""),
        os.getenv("GITHUB_ORG", ""),
        api_url=os.getenv("GITHUB_API_URL", DEFAULT_API_URL),
    )


async def check_github_connection():
    """Check the token and list a few teams of the organization"""
    print("\n🔍 Testing GitHub Connection...")

    org = os.getenv("GITHUB_ORG")

    try:
        async with _client() as client:
            login = await client.get_authenticated_user()
            print(f"✅ Authenticated as {login}")

            teams = await client.list_teams(limit=5)
            print(f"✅ Organization {org} is reachable")

            if teams:
                print("\n   Sample teams:")
                for team in teams:
                    print(f"   - {team.name} ({team.slug})")

        return True

    except TeamSyncError as e:
        print(f"❌ GitHub connection failed: {e}")
        return False


async def check_team_data():
    """Load and parse the team data document"""
    print("\n🔍 Testing Team Data...")

    path = os.getenv("TEAM_DATA_PATH", "teams.yml")
    repository = os.getenv("TEAM_DATA_REPOSITORY")

    try:
        if repository:
            async with _client() as client:
                raw = await fetch_team_data(client, repository, path, os.getenv("TEAM_DATA_REF") or None)
        else:
            raw = load_team_data(path)

        teams = parse_team_data(raw, os.getenv("TEAM_NAME_PREFIX", ""))
        print(f"✅ Parsed {len(teams)} teams from {path}")
        for team in teams[:5]:
            parent = f" (parent: {team.parent_name})" if team.parent_name else ""
            print(f"   - {team.name}: {len(team.members)} members{parent}")
        return True

    except TeamSyncError as e:
        print(f"❌ Team data could not be loaded: {e}")
        return False


async def main():
    """Run all checks"""
    print("🧪 Connection Test Script")
    print("=" * 60)

    github_ok = await check_github_connection()
    team_data_ok = await check_team_data()

    print("\n" + "=" * 60)
    print("📊 Test Summary:")
    print(f"   GitHub: {'✅ PASS' if github_ok else '❌ FAIL'}")
    print(f"   Team data: {'✅ PASS' if team_data_ok else '❌ FAIL'}")

    if github_ok and team_data_ok:
        print("\n✅ All checks passed! Ready to run sync.py")
        return 0
    else:
        print("\n❌ Some checks failed. Please check your configuration.")
        return 1


if __name__ == "__main__":
    exit_code = asyncio.run(main())
    sys.exit(exit_code)
