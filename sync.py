#!/usr/bin/env python3
"""
GitHub Team Sync

This script synchronizes GitHub teams of an organization with the contents
of a team data document: team names, descriptions, parent teams and members.
Teams marked with `team_sync_ignored` are left untouched.
"""

import os
import sys
import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from dotenv import load_dotenv

from config_adapter import fetch_team_data, load_team_data, parse_team_data
from errors import ConfigurationError, DependencyCycleError
from github_adapter import DEFAULT_API_URL, GitHubClient
from models import DesiredTeam, SyncReport
from reconciler import TeamReconciler


logger = logging.getLogger(__name__)


@dataclass
class Settings:
    """Runtime configuration, read from the environment."""

    token: str
    org: str
    team_data_path: str = "teams.yml"
    team_data_repository: Optional[str] = None
    team_data_ref: Optional[str] = None
    prefix: str = ""
    api_url: str = DEFAULT_API_URL
    dry_run: bool = False
    max_concurrency: int = 10
    timeout: float = 30.0


def _int_setting(name: str, default: int) -> int:
    value = os.getenv(name, "").strip()
    if not value:
        return default
    try:
        parsed = int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None
    if parsed < 1:
        raise ConfigurationError(f"{name} must be at least 1, got {parsed}")
    return parsed


def _float_setting(name: str, default: float) -> float:
    value = os.getenv(name, "").strip()
    if not value:
        return default
    try:
        parsed = float(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from None
    if parsed <= 0:
        raise ConfigurationError(f"{name} must be positive, got {parsed}")
    return parsed


def load_settings() -> Settings:
    """Load settings from environment variables (and a .env file if present)."""
    load_dotenv()

    token = os.getenv("GITHUB_TOKEN", "")
    org = os.getenv("GITHUB_ORG", "")
    missing = [name for name, value in (("GITHUB_TOKEN", token), ("GITHUB_ORG", org)) if not value]
    if missing:
        raise ConfigurationError(f"Missing required configuration variables: {', '.join(missing)}")

    return Settings(
        token=token,
        org=org,
        team_data_path=os.getenv("TEAM_DATA_PATH", "teams.yml"),
        team_data_repository=os.getenv("TEAM_DATA_REPOSITORY") or None,
        team_data_ref=os.getenv("TEAM_DATA_REF") or None,
        prefix=os.getenv("TEAM_NAME_PREFIX", ""),
        api_url=os.getenv("GITHUB_API_URL", DEFAULT_API_URL),
        dry_run=os.getenv("SYNC_DRY_RUN", "false").lower() == "true",
        max_concurrency=_int_setting("SYNC_MAX_CONCURRENCY", 10),
        timeout=_float_setting("GITHUB_TIMEOUT", 30.0),
    )


def order_teams(teams: List[DesiredTeam]) -> List[DesiredTeam]:
    """
    Order teams so that every parent comes before its children.

    Document order is kept wherever the hierarchy allows it. Parents that
    are not part of the list do not constrain the order.
    """
    by_name: Dict[str, DesiredTeam] = {team.name: team for team in teams}
    ordered: List[DesiredTeam] = []
    done = set()

    def visit(team: DesiredTeam, path: List[str]):
        if team.name in done:
            return
        if team.name in path:
            cycle = path[path.index(team.name):]
            raise DependencyCycleError(cycle)

        parent = by_name.get(team.parent_name) if team.parent_name else None
        if parent is not None:
            visit(parent, path + [team.name])

        done.add(team.name)
        ordered.append(team)

    for team in teams:
        visit(team, [])

    return ordered


async def sync_teams(
    client: GitHubClient,
    teams: List[DesiredTeam],
    authenticated_user: str,
    max_concurrency: int = 10,
) -> SyncReport:
    """
    Reconcile every non-ignored team, one after another.

    Stops at the first failing team. The exception raised carries the
    report of the teams converged so far as its `report` attribute.
    """
    report = SyncReport()

    # Only manage the active teams
    active_teams = []
    for team in teams:
        if team.ignored:
            logger.info(f"Skipping team {team.name} (team_sync_ignored)")
            report.skipped.append(team.name)
        else:
            active_teams.append(team)

    reconciler = TeamReconciler(client, authenticated_user, max_concurrency=max_concurrency)

    for team in order_teams(active_teams):
        try:
            result = await reconciler.reconcile(team)
        except Exception as e:
            report.failed_team = team.name
            e.report = report
            raise
        report.results.append(result)

    return report


def log_report(report: SyncReport):
    """Log a summary of the teams processed in a run."""
    for result in report.results:
        logger.info(
            f"  {result.name}: {result.action}"
            f" (+{len(result.added)} / -{len(result.removed)})"
        )
    if report.skipped:
        logger.info(f"  Skipped {len(report.skipped)} ignored teams: {', '.join(report.skipped)}")
    if report.failed_team:
        logger.error(f"  Stopped at team {report.failed_team}; later teams were not synchronized")


async def sync_github_teams(settings: Settings) -> SyncReport:
    """
    Main sync function.
    Synchronizes the GitHub teams of the organization with the team data.
    """
    logger.info(f"Starting GitHub team sync for organization {settings.org}")
    if settings.dry_run:
        logger.info("Running in DRY RUN mode - no changes will be made")

    async with GitHubClient(
        settings.token,
        settings.org,
        api_url=settings.api_url,
        dry_run=settings.dry_run,
        timeout=settings.timeout,
    ) as client:
        authenticated_user = await client.get_authenticated_user()

        if settings.team_data_repository:
            raw_team_data = await fetch_team_data(
                client, settings.team_data_repository, settings.team_data_path, settings.team_data_ref
            )
        else:
            raw_team_data = load_team_data(settings.team_data_path)
        logger.debug(f"raw teams config:\n{raw_team_data}")

        teams = parse_team_data(raw_team_data, settings.prefix)
        logger.info(f"Loaded {len(teams)} teams from team data")

        report = await sync_teams(client, teams, authenticated_user, settings.max_concurrency)

    logger.info("Sync completed successfully")
    log_report(report)
    return report


def main():
    load_dotenv()
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        settings = load_settings()
        asyncio.run(sync_github_teams(settings))
    except Exception as e:
        logger.error(f"Sync failed: {e}", exc_info=True)
        report = getattr(e, "report", None)
        if report is not None:
            log_report(report)
        sys.exit(1)


if __name__ == "__main__":
    main()
