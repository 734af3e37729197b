# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Artifact naming tests.

The artifact name is the only persisted contract: restores depend on the
exact format and on lexical order matching creation order.
"""

from datetime import datetime, timedelta, timezone, UTC

from pgs3backup.naming import (
    artifact_name,
    decompressed_name,
    format_timestamp,
    parse_artifact_timestamp,
)


def test_artifact_name_matches_documented_format():
    instant = datetime(2025, 1, 2, 3, 4, 5, 678000, tzinfo=UTC)

    assert artifact_name("backup", instant) == "backup-2025-01-02T03-04-05-678Z.tar.gz"


def test_naive_instant_is_treated_as_utc():
    naive = datetime(2025, 1, 2, 3, 4, 5, 678000)
    aware = naive.replace(tzinfo=UTC)

    assert format_timestamp(naive) == format_timestamp(aware)


def test_non_utc_instant_is_converted():
    plus_two = timezone(timedelta(hours=2))
    instant = datetime(2025, 1, 2, 5, 4, 5, 678000, tzinfo=plus_two)

    assert format_timestamp(instant) == "2025-01-02T03-04-05-678Z"


def test_timestamp_has_no_colons_or_dots():
    ts = format_timestamp(datetime(2030, 12, 31, 23, 59, 59, 999999, tzinfo=UTC))

    assert ":" not in ts
    assert "." not in ts
    # Sub-millisecond digits are dropped, not rounded up
    assert ts == "2030-12-31T23-59-59-999Z"


def test_lexical_order_equals_chronological_order():
    start = datetime(2024, 12, 31, 23, 59, 59, 999000, tzinfo=UTC)
    instants = [
        start,
        start + timedelta(milliseconds=1),
        start + timedelta(seconds=9),
        start + timedelta(minutes=10),
        start + timedelta(days=40),
        start + timedelta(days=400),
    ]

    names = [artifact_name("backup", i) for i in instants]

    assert sorted(names) == names


def test_parse_artifact_timestamp_from_full_key():
    key = "db/backup-2025-01-02T03-04-05-678Z.tar.gz"

    parsed = parse_artifact_timestamp(key)

    assert parsed == datetime(2025, 1, 2, 3, 4, 5, 678000, tzinfo=UTC)


def test_parse_artifact_timestamp_round_trips_name():
    instant = datetime(2026, 7, 14, 9, 30, 0, 125000, tzinfo=UTC)

    assert parse_artifact_timestamp(artifact_name("nightly", instant)) == instant


def test_parse_artifact_timestamp_rejects_foreign_keys():
    assert parse_artifact_timestamp("db/notes.txt") is None
    assert parse_artifact_timestamp("backup-2025-13-40T03-04-05-678Z.tar.gz") is None
    assert parse_artifact_timestamp("backup-2025-01-02T03:04:05.678Z.tar.gz") is None


def test_decompressed_name():
    assert decompressed_name("backup-2025-01-02T03-04-05-678Z.tar.gz") == (
        "backup-2025-01-02T03-04-05-678Z.tar"
    )
    assert decompressed_name("db/custom-dump.gz") == "custom-dump"
    assert decompressed_name("plain") == "plain.tar"
