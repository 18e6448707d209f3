"""
Shared fixtures: an in-memory stand-in for the GitHub teams API
"""

import asyncio
from typing import Dict, List, Optional

import pytest

from config_adapter import team_slug
from errors import RemoteCallError
from models import DesiredTeam, RemoteTeam


CREATOR = "sync-bot"


class FakeGitHubClient:
    """Keeps teams in memory and records every call made against it."""

    def __init__(self, org: str = "acme", authenticated_user: str = CREATOR):
        self.org = org
        self.authenticated_user = authenticated_user
        self.teams: Dict[str, RemoteTeam] = {}
        self.calls: List[tuple] = []
        self.failures: Dict[tuple, Exception] = {}
        self.closed = False
        self._next_id = 1

    def add_team(self, name: str, members=(), parent: Optional[RemoteTeam] = None, description=None) -> RemoteTeam:
        team = RemoteTeam(
            id=self._next_id,
            slug=team_slug(name),
            name=name,
            description=description,
            parent_id=parent.id if parent else None,
            members=set(members),
        )
        self._next_id += 1
        self.teams[team.slug] = team
        return team

    def fail(self, *call, error: Exception = None):
        """Make the call matching `call` (e.g. ("add_member", "core", "bob")) raise."""
        self.failures[call] = error or RemoteCallError("PUT", "/fake", 500, "boom")

    def _record(self, *call):
        self.calls.append(call)
        if call in self.failures:
            raise self.failures[call]

    @property
    def mutations(self) -> List[tuple]:
        return [call for call in self.calls if call[0] not in ("get_team", "get_authenticated_user")]

    def members_of(self, slug: str) -> set:
        return set(self.teams[slug].members)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def get_authenticated_user(self) -> str:
        self._record("get_authenticated_user")
        return self.authenticated_user

    async def get_team(self, slug: str, with_members: bool = False) -> Optional[RemoteTeam]:
        self._record("get_team", slug)
        team = self.teams.get(slug)
        if team is None:
            return None
        return RemoteTeam(
            id=team.id,
            slug=team.slug,
            name=team.name,
            description=team.description,
            parent_id=team.parent_id,
            members=set(team.members) if with_members else None,
        )

    async def create_team(self, name, slug, description=None, parent_id=None, privacy="closed") -> RemoteTeam:
        self._record("create_team", name, parent_id, privacy)
        team = RemoteTeam(
            id=self._next_id, slug=slug, name=name, description=description,
            parent_id=parent_id, members={self.authenticated_user},
        )
        self._next_id += 1
        self.teams[slug] = team
        return team

    async def update_team(self, slug, name, description=None):
        self._record("update_team", slug, name, description)
        self.teams[slug].name = name
        self.teams[slug].description = description

    async def delete_team(self, slug):
        self._record("delete_team", slug)
        del self.teams[slug]

    async def add_member(self, slug, username):
        await asyncio.sleep(0)
        self._record("add_member", slug, username)
        self.teams[slug].members.add(username)

    async def remove_member(self, slug, username):
        await asyncio.sleep(0)
        self._record("remove_member", slug, username)
        self.teams[slug].members.discard(username)

    async def close(self):
        self.closed = True


def desired(name: str, members=(), parent: str = None, description: str = None, ignored: bool = False) -> DesiredTeam:
    return DesiredTeam(
        name=name,
        slug=team_slug(name),
        description=description,
        parent_name=parent,
        members=frozenset(members),
        ignored=ignored,
    )


@pytest.fixture
def github():
    return FakeGitHubClient()
