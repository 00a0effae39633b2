"""Checks on the access rules shipped in supabase/schema.sql."""

import re
from pathlib import Path

SCHEMA = (Path(__file__).resolve().parent.parent / "supabase" / "schema.sql").read_text()


def _statements():
    return [" ".join(s.split()) for s in SCHEMA.split(";")]


def test_anon_updates_limited_to_counters():
    statements = _statements()

    assert any(s.endswith("REVOKE UPDATE ON content FROM anon") for s in statements)
    grants = [s for s in statements if re.search(r"GRANT UPDATE \(.*\) ON content TO anon", s)]
    assert len(grants) == 1
    columns = re.search(r"\((.*)\)", grants[0]).group(1)
    assert {c.strip() for c in columns.split(",")} == {"downloads", "rating", "ratings_count"}


def test_no_content_write_policy_for_public_role():
    for statement in _statements():
        if "ON content FOR" in statement and "FOR SELECT" not in statement:
            assert "TO public" not in statement
