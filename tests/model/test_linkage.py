"""Tests for record linkage onto the roster."""

from team_roster.model.agents.linkage import (
    SourceRecord,
    link_records,
    normalize_name,
)
from team_roster.model.schemas import MemberName, TeamMember
from team_roster.model.team_model import MemberRoster


def _roster(*members: tuple[str, list[str]]) -> MemberRoster:
    roster = MemberRoster("kcesar.org")
    for last_first, emails in members:
        member = TeamMember(name=MemberName.from_last_first(last_first))
        member.set_emails(emails, "kcesar.org")
        roster.add(member)
    return roster


def _record(key: str, email: str | None = None, name: str | None = None) -> SourceRecord:
    return SourceRecord(
        key=key,
        emails=[email] if email else [],
        full_name=name,
        label=name or email or key,
        record={"id": key, "email": email, "name": name},
    )


def _link(roster: MemberRoster, records: list[SourceRecord], **kwargs):
    return link_records(
        roster, "Test", records, record_key=lambda r: r["id"], **kwargs
    )


class TestNormalizeName:
    def test_lowercases_and_strips_punctuation(self):
        assert normalize_name("  Alice   SMITH! ") == "alice smith"
        assert normalize_name("O'Brien") == "o brien"

    def test_empty(self):
        assert normalize_name(None) == ""
        assert normalize_name("") == ""


class TestLinkRecords:
    """Tests for link_records."""

    def test_email_match_attaches_record(self):
        """A record matching one member by email is attached to it."""
        roster = _roster(("Smith, Alice", ["asmith@kcesar.org"]))

        stats = _link(roster, [_record("1", "ASMITH@kcesar.org")])

        member = roster.members[0]
        assert member.platforms["Test"]["id"] == "1"
        assert stats.matched == 1
        assert len(roster) == 1

    def test_name_match_when_email_misses(self):
        """Normalized name is tried when no email matches."""
        roster = _roster(("Jones, Bob", ["bob@example.com"]))

        _link(roster, [_record("1", "bjones@old.org", "bob  JONES")])

        assert "Test" in roster.members[0].platforms

    def test_email_match_wins_over_name(self):
        """Name matching is not consulted once an email matches."""
        roster = _roster(
            ("Smith, Alice", ["asmith@kcesar.org"]),
            ("Jones, Bob", ["bob@example.com"]),
        )

        _link(roster, [_record("1", "bob@example.com", "Alice Smith")])

        alice, bob = roster.members
        assert "Test" not in alice.platforms
        assert "Test" in bob.platforms

    def test_unmatched_record_creates_template_member(self):
        """Records matching nobody become new template members."""
        roster = _roster(("Smith, Alice", ["asmith@kcesar.org"]))

        stats = _link(roster, [_record("9", "eve@other.org", "Eve Unknown")])

        assert len(roster) == 2
        created = roster.members[1]
        assert created.name.is_template
        assert created.platforms == {"Test": {"id": "9", "email": "eve@other.org", "name": "Eve Unknown"}}
        assert created.team_status.title == "empty"
        assert stats.created == 1

    def test_ambiguous_record_links_to_nobody(self):
        """A record matching two members attaches to neither."""
        roster = _roster(
            ("Smith, Alice", ["shared@kcesar.org"]),
            ("Smith, Alan", ["shared@kcesar.org"]),
        )

        stats = _link(roster, [_record("1", "shared@kcesar.org")])

        assert len(roster) == 2
        for member in roster.members:
            assert "Test" not in member.platforms
            assert len(member.link_conflicts) == 1
            conflict = member.link_conflicts[0]
            assert conflict.platform == "Test"
            assert conflict.candidates == ["Smith, Alice", "Smith, Alan"]
        assert stats.ambiguous == 1

    def test_second_record_for_linked_member_is_conflict(self):
        """The first record keeps the member's slot."""
        roster = _roster(("Smith, Alice", ["asmith@kcesar.org"]))

        _link(
            roster,
            [_record("1", "asmith@kcesar.org"), _record("2", "asmith@kcesar.org")],
        )

        member = roster.members[0]
        assert member.platforms["Test"]["id"] == "1"
        assert member.link_conflicts[0].reason == "matches a member linked to another account"

    def test_alias_email_is_used(self):
        """Aliased record emails match the target address."""
        roster = _roster(("Former, Dan", ["dformer@kcesar.org"]))

        _link(
            roster,
            [_record("1", "Old@kcesar.org")],
            alias_emails={"old@kcesar.org": "dformer@kcesar.org"},
        )

        assert "Test" in roster.members[0].platforms

    def test_template_members_are_not_name_matched(self):
        """Members still carrying the template name only match by email."""
        roster = MemberRoster("kcesar.org")
        roster.add(TeamMember())

        _link(roster, [_record("1", None, "Unknown User")])

        assert len(roster) == 2

    def test_later_records_see_created_members(self):
        """The index is updated as members are created."""
        roster = MemberRoster("kcesar.org")

        def on_create(member, source):
            roster.set_emails(member.id, source.emails)

        _link(
            roster,
            [_record("1", "eve@other.org"), _record("2", "EVE@other.org")],
            on_create=on_create,
        )

        assert len(roster) == 1
        assert roster.members[0].link_conflicts[0].record == "EVE@other.org"

    def test_on_match_callback(self):
        """on_match runs with the member and source record."""
        roster = _roster(("Smith, Alice", ["asmith@kcesar.org"]))
        seen = []

        _link(
            roster,
            [_record("1", "asmith@kcesar.org")],
            on_match=lambda member, source: seen.append((member.name.last, source.key)),
        )

        assert seen == [("Smith", "1")]

    def test_linking_twice_adds_nothing(self):
        """Linkage is idempotent."""
        roster = _roster(("Smith, Alice", ["asmith@kcesar.org"]))
        records = [_record("1", "asmith@kcesar.org"), _record("2", "eve@other.org")]

        _link(roster, records)
        before = [(m.id, dict(m.platforms)) for m in roster]
        stats = _link(roster, records)

        assert [(m.id, dict(m.platforms)) for m in roster] == before
        assert stats.skipped == 2
        assert all(not m.link_conflicts for m in roster)
