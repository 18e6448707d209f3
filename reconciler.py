"""
Reconciliation of a single team

Converges one DesiredTeam onto the GitHub organization: the team itself
(created, updated, or rebuilt when its parent changed) and its members.
"""

import logging
from typing import Optional

from config_adapter import ConfigMembershipAdapter, team_slug
from errors import OrderingViolationError
from github_adapter import GitHubClient, GitHubMembershipAdapter
from models import DesiredTeam, RemoteTeam, TeamSyncResult


logger = logging.getLogger(__name__)


class TeamReconciler:
    """
    Applies the changes needed to make a GitHub team match its desired state.

    Teams are expected to arrive parents first: a parent referenced by a
    team must already exist when the team is reconciled.
    """

    def __init__(self, client: GitHubClient, authenticated_user: str, max_concurrency: int = 10):
        self.client = client
        self.authenticated_user = authenticated_user
        self.max_concurrency = max_concurrency

    async def _resolve_parent_id(self, desired: DesiredTeam) -> Optional[int]:
        parent = await self.client.get_team(team_slug(desired.parent_name), with_members=False)
        if parent is None:
            logger.error(f"Expected {desired.parent_name} to already be created")
            raise OrderingViolationError(desired.name, desired.parent_name)
        return parent.id

    async def _create_team_without_members(self, desired: DesiredTeam, parent_id: Optional[int]) -> RemoteTeam:
        """Create the team and take the creator back out of it."""
        logger.debug(f"No team was found in {self.client.org} with slug {desired.slug}. Creating one.")
        team = await self.client.create_team(
            desired.name,
            desired.slug,
            description=desired.description,
            parent_id=parent_id,
            privacy="closed",
        )

        logger.debug(f"Removing creator ({self.authenticated_user}) from {team.slug}")
        await self.client.remove_member(team.slug, self.authenticated_user)
        return team

    async def reconcile(self, desired: DesiredTeam) -> TeamSyncResult:
        """Converge a single team and its memberships."""
        logger.info(f"Synchronizing team {desired.name} ({desired.slug})")
        logger.debug(f"Desired team members for team slug {desired.slug}: {sorted(desired.members)}")

        existing_team = await self.client.get_team(desired.slug, with_members=True)

        parent_id = None
        if desired.parent_name:
            parent_id = await self._resolve_parent_id(desired)

        rebuilt = False
        if desired.parent_name and existing_team is not None and existing_team.parent_id != parent_id:
            logger.info(
                f"removing team {existing_team.name} because parent team differs "
                f"(current={existing_team.parent_id}, desired={parent_id})"
            )
            await self.client.delete_team(existing_team.slug)
            existing_team = None
            rebuilt = True

        if existing_team is not None:
            existing_members = set(existing_team.members or ())
            logger.debug(f"Existing team members for team slug {existing_team.slug}: {sorted(existing_members)}")

            await self.client.update_team(existing_team.slug, desired.name, desired.description)
            slug = existing_team.slug
            action = "updated"
        else:
            existing_members = set()
            try:
                created = await self._create_team_without_members(desired, parent_id)
            except Exception:
                if rebuilt:
                    logger.error(f"Team {desired.name} was deleted because its parent changed but was not recreated")
                raise
            slug = created.slug
            action = "rebuilt" if rebuilt else "created"

        target = GitHubMembershipAdapter(client=self.client, team_slug=slug, max_concurrency=self.max_concurrency)
        target.load(existing_members)
        source = ConfigMembershipAdapter()
        source.load(desired, slug)

        target.sync_from(source)
        added, removed = await target.execute_pending_operations()

        logger.info(f"Team {desired.name} {action}: {len(added)} added, {len(removed)} removed")
        return TeamSyncResult(name=desired.name, slug=slug, action=action, added=added, removed=removed)
