"""
Exceptions raised by the GitHub team sync
"""

from typing import Optional, Sequence


class TeamSyncError(Exception):
    """Base class for every error the sync raises on purpose."""


class ConfigurationError(TeamSyncError):
    """A required setting is missing or has an invalid value."""


class ConfigFormatError(TeamSyncError):
    """The team data document does not have the expected shape."""


class OrderingViolationError(TeamSyncError):
    """A team references a parent that does not exist in the organization yet."""

    def __init__(self, team_name: str, parent_name: str):
        super().__init__(f"Expected parent team {parent_name!r} of {team_name!r} to already be created")
        self.team_name = team_name
        self.parent_name = parent_name


class DependencyCycleError(TeamSyncError):
    """The parent references of the team data form a cycle."""

    def __init__(self, team_names: Sequence[str]):
        super().__init__(f"Parent references form a cycle between teams: {', '.join(team_names)}")
        self.team_names = list(team_names)


class RemoteCallError(TeamSyncError):
    """A GitHub API call failed."""

    def __init__(self, method: str, path: str, status_code: Optional[int], message: str = ""):
        status = status_code if status_code is not None else "no response"
        text = f"{method} {path} failed ({status})"
        if message:
            text = f"{text}: {message}"
        super().__init__(text)
        self.method = method
        self.path = path
        self.status_code = status_code
