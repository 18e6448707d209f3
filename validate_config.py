#!/usr/bin/env python3
"""
Check the sync configuration and the team data without touching GitHub
"""

import os
import sys
from dotenv import load_dotenv

from config_adapter import load_team_data, parse_team_data
from errors import ConfigFormatError, DependencyCycleError
from sync import order_teams

# Load environment variables
load_dotenv()

def validate_config():
    """Validate that all required configuration is set"""
    required_vars = [
        'GITHUB_TOKEN',
        'GITHUB_ORG',
    ]

    missing = []
    for var in required_vars:
        if not os.getenv(var):
            missing.append(var)

    if missing:
        print("❌ Missing required configuration variables:")
        for var in missing:
            print(f"   - {var}")
        return False

    print("✅ All required configuration variables are set")
    return True

def validate_team_data():
    """Parse the local team data document and check its parent references"""
    path = os.getenv('TEAM_DATA_PATH', 'teams.yml')
    if os.getenv('TEAM_DATA_REPOSITORY'):
        print(f"ℹ️  Team data is fetched from {os.getenv('TEAM_DATA_REPOSITORY')}, skipping local check")
        return True

    try:
        teams = parse_team_data(load_team_data(path), os.getenv('TEAM_NAME_PREFIX', ''))
        order_teams([team for team in teams if not team.ignored])
    except (ConfigFormatError, DependencyCycleError) as e:
        print(f"❌ Invalid team data in {path}: {e}")
        return False

    ignored = sum(1 for team in teams if team.ignored)
    print(f"✅ Team data is valid: {len(teams)} teams ({ignored} ignored)")
    return True

def display_config():
    """Display current configuration (masking sensitive values)"""
    print("\n📋 Current Configuration:")
    print(f"   GitHub API URL: {os.getenv('GITHUB_API_URL', 'https://api.github.com')}")
    print(f"   GitHub Organization: {os.getenv('GITHUB_ORG')}")
    print(f"   GitHub Token: {'***' if os.getenv('GITHUB_TOKEN') else '(not set)'}")
    print(f"   Team Data Path: {os.getenv('TEAM_DATA_PATH', 'teams.yml')}")
    print(f"   Team Data Repository: {os.getenv('TEAM_DATA_REPOSITORY', '(local file)')}")
    print(f"   Team Name Prefix: {os.getenv('TEAM_NAME_PREFIX', '')!r}")
    print(f"   Max Concurrency: {os.getenv('SYNC_MAX_CONCURRENCY', '10')}")
    print(f"   Dry Run Mode: {os.getenv('SYNC_DRY_RUN', 'false')}")
    print()

if __name__ == "__main__":
    print("🔍 GitHub Team Sync - Configuration Validator\n")

    if validate_config() and validate_team_data():
        display_config()
        print("✅ Configuration is valid. You can now run:")
        print("   python sync.py")
    else:
        print("\n❌ Please update your .env file or team data")
        print("   See .env.example for reference")
        sys.exit(1)
