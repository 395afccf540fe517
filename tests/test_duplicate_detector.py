"""
Tests for duplicate candidate detection.
"""

from conftest import known_candidate
from talentflow.schemas.candidate import ParsedCandidateData
from talentflow.services.duplicate_detector import EMAIL_EXISTS, NAME_EXISTS, find_duplicate


def parsed(full_name="", email=""):
    return ParsedCandidateData(full_name=full_name, email=email)


def test_no_known_candidates():
    assert find_duplicate(parsed("Ada Lovelace", "ada@x.com"), []) is None


def test_email_match():
    known = [known_candidate("Someone", "ada@x.com")]
    assert find_duplicate(parsed("Ada Lovelace", "ada@x.com"), known) == EMAIL_EXISTS


def test_email_match_ignores_case_and_whitespace():
    known = [known_candidate("Someone", "Ada@X.com")]
    assert find_duplicate(parsed("Other", "  ada@x.COM "), known) == EMAIL_EXISTS


def test_name_match_ignores_case():
    known = [known_candidate("Ada Lovelace", "old@x.com")]
    assert find_duplicate(parsed(" ada lovelace", "new@x.com"), known) == NAME_EXISTS


def test_email_takes_precedence_over_earlier_name_match():
    """A name match earlier in the list never hides a later email match"""
    known = [
        known_candidate("Ada Lovelace", "first@x.com"),
        known_candidate("Someone Else", "ada@x.com"),
    ]
    assert find_duplicate(parsed("Ada Lovelace", "ada@x.com"), known) == EMAIL_EXISTS


def test_blank_values_never_match():
    known = [known_candidate("", ""), known_candidate("Bob", None)]
    assert find_duplicate(parsed("", ""), known) is None
    assert find_duplicate(parsed("Carol", ""), known) is None
    assert find_duplicate(parsed("", "  "), known) is None


def test_blank_email_still_checks_name():
    known = [known_candidate("Bob", None)]
    assert find_duplicate(parsed("BOB", ""), known) == NAME_EXISTS


def test_no_match():
    known = [known_candidate("Ada Lovelace", "ada@x.com")]
    assert find_duplicate(parsed("Grace Hopper", "grace@x.com"), known) is None
