"""
Data models for the GitHub team sync
"""

from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional, Set

from diffsync import DiffSyncModel


@dataclass(frozen=True)
class DesiredTeam:
    """A team as declared in the team data document (names already prefixed)."""

    name: str
    slug: str
    description: Optional[str] = None
    parent_name: Optional[str] = None
    members: FrozenSet[str] = frozenset()
    ignored: bool = False


@dataclass
class RemoteTeam:
    """
    A team as it currently exists in the GitHub organization.

    `members` is None when membership was not requested, so a lookup
    result is either None (absent), a team without members loaded, or
    a team with members loaded.
    """

    id: Optional[int]
    slug: str
    name: str
    description: Optional[str] = None
    parent_id: Optional[int] = None
    members: Optional[Set[str]] = None


@dataclass
class TeamSyncResult:
    """Outcome of reconciling a single team."""

    name: str
    slug: str
    action: str
    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)


@dataclass
class SyncReport:
    """Outcome of a whole run, filled in as teams converge."""

    results: List[TeamSyncResult] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed_team: Optional[str] = None


class TeamMembership(DiffSyncModel):
    """
    DiffSync model representing a team membership.
    A membership is a relationship between a user and a team. The user is
    identified by the casefolded login; `login` keeps the spelling used
    when talking to the API.
    """
    _modelname = "membership"
    _identifiers = ("username", "team_slug")
    _attributes = ("login",)

    username: str
    team_slug: str
    login: str

    @classmethod
    def create(cls, adapter, ids, attrs):
        """Queue adding this membership in the target adapter (GitHub)."""
        membership = cls(**ids, **attrs)
        membership.adapter = adapter

        if hasattr(adapter, 'pending_operations'):
            adapter.pending_operations.append(('create', membership.login, membership.team_slug))

        return membership

    def update(self, attrs):
        """Only the login casing differs, GitHub already has this membership."""
        return super().update(attrs)

    def delete(self) -> Optional["TeamMembership"]:
        """Queue removing this membership from the target adapter (GitHub)."""
        if hasattr(self.adapter, 'pending_operations'):
            self.adapter.pending_operations.append(('delete', self.login, self.team_slug))

        return self
