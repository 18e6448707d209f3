"""
Team data adapter for diffsync

Parses the team data document into DesiredTeam records and exposes the
desired memberships of a team as the diffsync source side.
"""

import logging
from typing import List, Optional

import yaml
from diffsync import Adapter
from pydantic import BaseModel, StrictBool, StrictStr, ValidationError
from slugify import slugify

from errors import ConfigFormatError
from models import DesiredTeam, TeamMembership


logger = logging.getLogger(__name__)


_SLUG_REPLACEMENTS = [
    ["&", " and "],
    ["♥", " love "],
]


class MemberEntry(BaseModel):
    """A single entry of a team's `members` list."""

    github: StrictStr


class TeamEntry(BaseModel):
    """
    Schema of a team in the team data document.

    Fields default to None instead of being Optional so an explicit
    `null` in the document is rejected rather than treated as unset.
    """

    description: StrictStr = None
    team_sync_ignored: StrictBool = False
    parent: StrictStr = None
    members: List[MemberEntry] = []


def team_slug(name: str) -> str:
    """
    Derive the GitHub team slug from a display name.

    The slug depends on the name only: `&` is spelled out, the name is
    transliterated to ASCII and lowercased, and every run of characters
    outside [a-z0-9] becomes a single dash. Camel case is not split.
    """
    return slugify(name, replacements=_SLUG_REPLACEMENTS, lowercase=True)


def prefix_name(unprefixed_name: str, prefix: str) -> str:
    """Prepend the configured prefix (if any) to a team name."""
    trimmed_prefix = prefix.strip()
    trimmed = unprefixed_name.strip()

    return trimmed if trimmed_prefix == "" else f"{trimmed_prefix} {trimmed}"


def _describe_validation_error(error: ValidationError) -> str:
    problems = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"]) or "team"
        problems.append(f"{location}: {detail['msg']}")
    return "; ".join(problems)


def parse_team_data(raw_team_config: str, prefix: str = "") -> List[DesiredTeam]:
    """
    Parse the raw YAML team data into a list of DesiredTeam records.

    The document must map team names to team metadata. Teams are returned
    in document order. Any shape violation raises ConfigFormatError.
    """
    try:
        teams_data = yaml.safe_load(raw_team_config)
    except yaml.YAMLError as e:
        raise ConfigFormatError(f"Team data is not valid YAML: {e}") from e

    if teams_data is None:
        logger.warning("Team data document is empty")
        return []

    if not isinstance(teams_data, dict):
        logger.error("yaml data is wrong format")
        raise ConfigFormatError(
            "Unexpected team data format (expected an object mapping team names to team metadata)"
        )

    teams = []

    for team_name, team_data in teams_data.items():
        if team_name is None or str(team_name).strip() == "":
            logger.error(f"team name is not a string got: {team_name!r}")
            raise ConfigFormatError("Team names must be non-empty strings")
        team_name = str(team_name)

        if not isinstance(team_data, dict):
            logger.error(f"{team_name}: team data is not an object")
            raise ConfigFormatError(f"Invalid team data for team {team_name} (expected an object)")

        try:
            entry = TeamEntry.model_validate(team_data)
        except ValidationError as e:
            raise ConfigFormatError(
                f"Invalid team data for team {team_name}: {_describe_validation_error(e)}"
            ) from e

        usernames = [member.github for member in entry.members]
        members = frozenset(usernames)
        if len(members) != len(usernames):
            logger.warning(f"{team_name}: duplicate members listed, each is added once")

        parent_name: Optional[str] = None
        if entry.parent is not None and entry.parent.strip() != "":
            parent_name = prefix_name(entry.parent, prefix)
            if not team_slug(parent_name):
                raise ConfigFormatError(
                    f"Parent {entry.parent!r} of team {team_name} does not produce a usable team slug"
                )

        name = prefix_name(team_name, prefix)
        slug = team_slug(name)
        if not slug:
            logger.error(f"{team_name}: team name has no characters usable in a slug")
            raise ConfigFormatError(f"Team name {team_name!r} does not produce a usable team slug")

        teams.append(DesiredTeam(
            name=name,
            slug=slug,
            description=entry.description,
            parent_name=parent_name,
            members=members,
            ignored=entry.team_sync_ignored,
        ))

    return teams


def load_team_data(path: str) -> str:
    """Read the team data document from a local file."""
    logger.info(f"Loading team data from {path}")
    try:
        with open(path, encoding="utf-8") as f:
            return f.read()
    except OSError as e:
        logger.error(f"Unable to load team file {path}")
        raise ConfigFormatError(f"Unable to read team data file {path}: {e}") from e


async def fetch_team_data(client, repository: str, path: str, ref: Optional[str] = None) -> str:
    """Fetch the team data document from a repository through the GitHub API."""
    logger.info(f"Fetching team data from {repository}:{path}" + (f"@{ref}" if ref else ""))
    return await client.get_file_content(repository, path, ref)


class ConfigMembershipAdapter(Adapter):
    """
    DiffSync adapter for the team data document.
    Holds the desired memberships of a single team.
    """

    membership = TeamMembership
    top_level = ["membership"]

    def load(self, team: DesiredTeam, slug: Optional[str] = None):
        """Load the desired memberships of a team."""
        team_slug_value = slug or team.slug
        seen = set()
        for login in sorted(team.members):
            # logins are case-insensitive on GitHub
            if login.casefold() in seen:
                logger.warning(f"{team.name}: {login} is listed more than once with different casing")
                continue
            seen.add(login.casefold())
            self.add(TeamMembership(username=login.casefold(), team_slug=team_slug_value, login=login))
        logger.debug(f"Loaded {len(seen)} desired memberships for {team_slug_value}")
