from __future__ import annotations

from ledgerlink.domain.linking.normalize import (
    normalize_email,
    normalize_emails,
    normalize_member_id,
    normalize_member_ids,
    same_member,
)


def test_normalize_member_id_trims_and_lowercases() -> None:
    assert normalize_member_id("  T1-ABC ") == "t1-abc"


def test_normalize_member_ids_dedupes_and_keeps_order() -> None:
    assert normalize_member_ids(["B", " a ", "b", "", None, "A"]) == ("b", "a")


def test_normalize_emails_drops_blank_values() -> None:
    assert normalize_emails([" Alice@Example.com", None, " ", "alice@example.com"]) == (
        "alice@example.com",
    )
    assert normalize_email("BOB@x.io ") == "bob@x.io"


def test_same_member_compares_normalized_values() -> None:
    assert same_member("T1", " t1")
    assert not same_member("t1", None)
    assert not same_member("t1", "t2")
