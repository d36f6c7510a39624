"""Record linkage of platform records onto the member roster.

Each record is matched in priority order:
1. Email (case-insensitive, optionally through an alias table)
2. Normalized full name against the member's preferred full name

Exactly one match attaches the record. No match creates a new member.
Several matches attach nothing and leave a LinkConflict on every candidate.
"""

from collections.abc import Callable, Iterable
from typing import Any, NamedTuple

import structlog
from rapidfuzz import utils

from team_roster.model.schemas import LinkConflict, TeamMember, template_member
from team_roster.model.team_model import MemberRoster

logger = structlog.get_logger()


class SourceRecord(NamedTuple):
    """What the linkage step needs to know about one platform record."""

    key: str
    emails: list[str]
    full_name: str | None
    label: str
    record: Any


class LinkStats(NamedTuple):
    """Outcome counts for one linkage pass."""

    matched: int
    created: int
    ambiguous: int
    skipped: int


def normalize_name(name: str | None) -> str:
    """Normalize a display name for comparison.

    Lowercases, replaces punctuation with spaces and collapses whitespace.
    """
    if not name:
        return ""
    return " ".join(utils.default_process(name).split())


class MemberIndex:
    """Lookup of roster members by email and by normalized name.

    Tracks which records of a platform are already linked so that running a
    linkage pass twice adds nothing new.
    """

    def __init__(
        self,
        roster: MemberRoster,
        platform: str,
        record_key: Callable[[Any], str],
    ):
        """Index every member currently in the roster.

        Args:
            roster: Roster being merged
            platform: Platform whose records are being linked
            record_key: Returns the stable key of a platform record
        """
        self._platform = platform
        self._record_key = record_key
        self._by_email: dict[str, list[TeamMember]] = {}
        self._by_name: dict[str, list[TeamMember]] = {}
        self._linked_keys: set[str] = set()
        for member in roster:
            self.index(member)

    def index(self, member: TeamMember) -> None:
        """Add (or refresh) a member's entries."""
        for email in member.emails:
            bucket = self._by_email.setdefault(email.lower(), [])
            if not any(m is member for m in bucket):
                bucket.append(member)

        if not member.name.is_template:
            name = normalize_name(member.name.preferred_full)
            if name:
                bucket = self._by_name.setdefault(name, [])
                if not any(m is member for m in bucket):
                    bucket.append(member)

        record = member.platforms.get(self._platform)
        if record is not None:
            self._linked_keys.add(self._record_key(record))

    def is_linked(self, key: str) -> bool:
        return key in self._linked_keys

    def match(self, emails: list[str], full_name: str | None) -> list[TeamMember]:
        """Find members for a record, by email first and then by name.

        Returns:
            Distinct matching members in roster order of discovery
        """
        found: list[TeamMember] = []
        for email in emails:
            for member in self._by_email.get(email.lower(), []):
                if not any(m is member for m in found):
                    found.append(member)
        if found:
            return found

        name = normalize_name(full_name)
        if not name:
            return []
        return list(self._by_name.get(name, []))


def _record_conflict(
    candidates: list[TeamMember], platform: str, label: str, reason: str
) -> None:
    names = [m.name.last_first for m in candidates]
    for member in candidates:
        if any(
            c.platform == platform and c.record == label
            for c in member.link_conflicts
        ):
            continue
        member.link_conflicts.append(
            LinkConflict(
                platform=platform, record=label, reason=reason, candidates=names
            )
        )
    logger.warning(reason, platform=platform, record=label, candidates=names)


def link_records(
    roster: MemberRoster,
    platform: str,
    records: Iterable[SourceRecord],
    *,
    record_key: Callable[[Any], str],
    alias_emails: dict[str, str] | None = None,
    on_match: Callable[[TeamMember, SourceRecord], None] | None = None,
    on_create: Callable[[TeamMember, SourceRecord], None] | None = None,
) -> LinkStats:
    """Link platform records onto the roster in place.

    Args:
        roster: Roster being merged (only ever grows)
        platform: Platform name, used as the key in member.platforms
        records: Records in the order the platform returned them
        record_key: Returns the key of a raw record already on a member
        alias_emails: Record email -> team email overrides
        on_match: Called after a record is attached to an existing member
        on_create: Called after a new member is created for a record

    Returns:
        LinkStats with counts for logging
    """
    aliases = {k.lower(): v for k, v in (alias_emails or {}).items()}
    index = MemberIndex(roster, platform, record_key)

    matched = created = ambiguous = skipped = 0
    for source in records:
        if index.is_linked(source.key):
            skipped += 1
            continue

        emails = [aliases.get(e.lower(), e) for e in source.emails if e]
        candidates = index.match(emails, source.full_name)

        if len(candidates) > 1:
            _record_conflict(
                candidates, platform, source.label, "matches multiple members"
            )
            ambiguous += 1
        elif candidates and platform in candidates[0].platforms:
            # first record wins the member's slot
            _record_conflict(
                candidates,
                platform,
                source.label,
                "matches a member linked to another account",
            )
            ambiguous += 1
        elif candidates:
            member = candidates[0]
            roster.attach(member.id, platform, source.record)
            if on_match:
                on_match(member, source)
            index.index(member)
            matched += 1
        else:
            member = template_member()
            member.platforms[platform] = source.record
            roster.add(member)
            if on_create:
                on_create(member, source)
            index.index(member)
            created += 1

    stats = LinkStats(matched, created, ambiguous, skipped)
    logger.debug("Linked platform records", platform=platform, **stats._asdict())
    return stats
