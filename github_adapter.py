"""
GitHub adapter for diffsync

Talks to the GitHub organization teams API and executes the membership
changes diffsync queues for a team.
"""

import asyncio
import base64
import logging
from typing import Dict, List, Optional, Set, Tuple

import httpx
from diffsync import Adapter

from errors import ConfigFormatError, RemoteCallError
from models import RemoteTeam, TeamMembership


logger = logging.getLogger(__name__)


DEFAULT_API_URL = "https://api.github.com"


def _remote_team(data: dict, members: Optional[Set[str]] = None) -> RemoteTeam:
    parent = data.get("parent") or {}
    return RemoteTeam(
        id=data["id"],
        slug=data["slug"],
        name=data["name"],
        description=data.get("description"),
        parent_id=parent.get("id"),
        members=members,
    )


class GitHubClient:
    """
    Async client for the GitHub teams API of one organization.

    In dry run mode mutating calls are only logged. Planned creations and
    deletions are remembered so that later lookups in the same run see them.
    """

    def __init__(
        self,
        token: str,
        org: str,
        api_url: str = DEFAULT_API_URL,
        dry_run: bool = False,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.org = org
        self.dry_run = dry_run
        self._planned: Dict[str, Optional[RemoteTeam]] = {}
        self._http = httpx.AsyncClient(
            base_url=api_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def _request(self, method: str, path: str, *, not_found_ok: bool = False, **kwargs) -> Optional[httpx.Response]:
        """Send a request and map failures to RemoteCallError."""
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise RemoteCallError(method, path, None, str(e)) from e

        if response.status_code == 404 and not_found_ok:
            return None

        if response.is_error:
            try:
                message = response.json().get("message", "")
            except ValueError:
                message = response.text[:200]
            raise RemoteCallError(method, path, response.status_code, message)

        return response

    def _team_path(self, team_slug: str) -> str:
        return f"/orgs/{self.org}/teams/{team_slug}"

    async def get_authenticated_user(self) -> str:
        """Return the login the token is authenticated as."""
        logger.debug("Fetching authenticated user")
        response = await self._request("GET", "/user")
        login = response.json()["login"]
        logger.debug(f"GitHub client is authenticated as {login}")
        return login

    async def get_team(self, team_slug: str, with_members: bool = False) -> Optional[RemoteTeam]:
        """Look up a team by slug, returning None when it does not exist."""
        if team_slug in self._planned:
            planned = self._planned[team_slug]
            if planned is not None and with_members and planned.members is None:
                planned.members = set()
            return planned

        logger.info(f"Getting team info for {team_slug}")
        response = await self._request("GET", self._team_path(team_slug), not_found_ok=True)
        if response is None:
            return None

        members = await self.list_team_members(team_slug) if with_members else None
        return _remote_team(response.json(), members)

    async def list_teams(self, limit: int = 30) -> List[RemoteTeam]:
        """List the first teams of the organization (without members)."""
        response = await self._request("GET", f"/orgs/{self.org}/teams", params={"per_page": limit})
        return [_remote_team(data) for data in response.json()]

    async def list_team_members(self, team_slug: str) -> Set[str]:
        """List the logins of all members of a team, following pagination."""
        members: Set[str] = set()
        url: Optional[str] = f"{self._team_path(team_slug)}/members"
        params: Optional[dict] = {"per_page": 100}

        while url:
            response = await self._request("GET", url, params=params)
            members.update(member["login"] for member in response.json())
            url = response.links.get("next", {}).get("url")
            # the next link already carries the query string
            params = None

        return members

    async def create_team(
        self,
        name: str,
        team_slug: str,
        description: Optional[str] = None,
        parent_id: Optional[int] = None,
        privacy: str = "closed",
    ) -> RemoteTeam:
        """Create a team. GitHub adds the authenticated user as a member."""
        logger.debug(f"Creating team {name} parent={parent_id}")
        if self.dry_run:
            logger.info(f"[DRY RUN] Would create team {name} (privacy={privacy}, parent={parent_id})")
            planned = RemoteTeam(
                id=None, slug=team_slug, name=name, description=description, parent_id=parent_id, members=set()
            )
            self._planned[team_slug] = planned
            return planned

        body = {"name": name, "privacy": privacy}
        if description is not None:
            body["description"] = description
        if parent_id is not None:
            body["parent_team_id"] = parent_id

        response = await self._request("POST", f"/orgs/{self.org}/teams", json=body)
        team = _remote_team(response.json())
        logger.info(f"Created team {team.name} ({team.slug})")
        return team

    async def update_team(self, team_slug: str, name: str, description: Optional[str] = None):
        """Set the name and description of a team."""
        if self.dry_run:
            logger.info(f"[DRY RUN] Would update team {team_slug}: name={name!r} description={description!r}")
            return

        body = {"name": name}
        if description is not None:
            body["description"] = description
        await self._request("PATCH", self._team_path(team_slug), json=body)
        logger.info(f"Updated team {team_slug}")

    async def delete_team(self, team_slug: str):
        """Delete a team together with its memberships."""
        if self.dry_run:
            logger.info(f"[DRY RUN] Would delete team {team_slug}")
            self._planned[team_slug] = None
            return

        await self._request("DELETE", self._team_path(team_slug))
        logger.info(f"Deleted team {team_slug}")

    async def add_member(self, team_slug: str, username: str):
        """Add a user to a team (or update an existing membership)."""
        if self.dry_run:
            logger.info(f"[DRY RUN] Would add: {username} to team {team_slug}")
            return

        try:
            await self._request("PUT", f"{self._team_path(team_slug)}/memberships/{username}")
            logger.info(f"Added membership: {username} to team {team_slug}")
        except RemoteCallError as e:
            logger.error(f"Failed to add membership {username} -> {team_slug}: {e}")
            raise

    async def remove_member(self, team_slug: str, username: str):
        """Remove a user from a team."""
        if self.dry_run:
            logger.info(f"[DRY RUN] Would remove: {username} from team {team_slug}")
            return

        try:
            await self._request("DELETE", f"{self._team_path(team_slug)}/memberships/{username}")
            logger.info(f"Removed membership: {username} from team {team_slug}")
        except RemoteCallError as e:
            logger.error(f"Failed to remove membership {username} -> {team_slug}: {e}")
            raise

    async def get_file_content(self, repository: str, path: str, ref: Optional[str] = None) -> str:
        """Fetch a single file from a repository and return its decoded text."""
        params = {"ref": ref} if ref else None
        try:
            response = await self._request("GET", f"/repos/{repository}/contents/{path.lstrip('/')}", params=params)
        except RemoteCallError:
            logger.error(f"Unable to load team file {path}")
            raise

        data = response.json()
        if isinstance(data, list):
            raise ConfigFormatError("path must point to a single file, not a directory")

        content = data.get("content")
        if not isinstance(content, str) or data.get("encoding") != "base64":
            raise ConfigFormatError("GitHub contents API returned an unexpected response")

        return base64.b64decode(content).decode("utf-8")

    async def close(self):
        """Close the underlying HTTP client."""
        await self._http.aclose()
        logger.debug("GitHub client closed")


class GitHubMembershipAdapter(Adapter):
    """
    DiffSync adapter for the memberships of a single GitHub team.
    Operations queued by diffsync are executed against the GitHub API.
    """

    membership = TeamMembership
    top_level = ["membership"]

    def __init__(self, *args, client: GitHubClient = None, team_slug: str = "", max_concurrency: int = 10, **kwargs):
        super().__init__(*args, **kwargs)
        self.client = client
        self.team_slug = team_slug
        self.max_concurrency = max_concurrency
        self.pending_operations: list = []

    def load(self, members: Set[str]):
        """Load the current memberships of the team."""
        for login in sorted(members):
            self.add(TeamMembership(username=login.casefold(), team_slug=self.team_slug, login=login))
        logger.debug(f"Loaded {len(members)} existing memberships for {self.team_slug}")

    async def _run_phase(self, action, usernames: List[str]):
        """Run one call per user concurrently and re-raise the first failure once all settled."""
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def run(username: str):
            async with semaphore:
                await action(self.team_slug, username)

        results = await asyncio.gather(*(run(username) for username in usernames), return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                raise result

    async def execute_pending_operations(self) -> Tuple[List[str], List[str]]:
        """
        Execute the operations queued during sync.

        All removals finish before any addition starts. Returns the sorted
        lists of added and removed users.
        """
        to_remove = sorted(user for op, user, _ in self.pending_operations if op == 'delete')
        to_add = sorted(user for op, user, _ in self.pending_operations if op == 'create')
        self.pending_operations = []

        if not to_remove and not to_add:
            logger.info(f"No membership changes for {self.team_slug}")
            return [], []

        for username in to_remove:
            logger.debug(f"Removing {username} from {self.team_slug}")
        await self._run_phase(self.client.remove_member, to_remove)

        for username in to_add:
            logger.debug(f"Adding {username} to {self.team_slug}")
        await self._run_phase(self.client.add_member, to_add)

        return to_add, to_remove
