"""Tests for provider-facing models."""

import pytest

from src.models.provider import (
    ProbeResult,
    ProviderCredentials,
    RemoteListingState,
    parse_remote_state,
)
from src.models.sync_attempt import AttemptOutcome, SyncAttempt
from src.models.sync_status import SyncStatus


@pytest.mark.unit
@pytest.mark.parametrize(
    "raw,expected",
    [
        ("Active", RemoteListingState.ACTIVE),
        ("LIVE", RemoteListingState.ACTIVE),
        ("Under Review", RemoteListingState.UNDER_REVIEW),
        ("under_review", RemoteListingState.UNDER_REVIEW),
        ("in-review", RemoteListingState.UNDER_REVIEW),
        ("Submitted", RemoteListingState.PENDING),
        ("Disabled", RemoteListingState.SUSPENDED),
        ("Rejected", RemoteListingState.REJECTED),
        ("Archived", RemoteListingState.UNKNOWN),
        (None, RemoteListingState.UNKNOWN),
        ("", RemoteListingState.UNKNOWN),
    ],
)
def test_parse_remote_state(raw, expected):
    assert parse_remote_state(raw) is expected


@pytest.mark.unit
def test_credentials_token_hidden_in_repr(credentials):
    assert "tok_live" not in repr(credentials)
    assert "tok_live" not in str(credentials.model_dump())
    assert credentials.access_token.get_secret_value() == "tok_live_abcdefghijklmnop"


@pytest.mark.unit
def test_credentials_default_connected():
    credentials = ProviderCredentials(agency_id="a1", access_token="x" * 20)
    assert credentials.status == "connected"


@pytest.mark.unit
@pytest.mark.parametrize(
    "reachable,authorized,expected",
    [(True, True, True), (True, False, False), (False, False, False)],
)
def test_probe_can_proceed(reachable, authorized, expected):
    probe = ProbeResult(reachable=reachable, authorized=authorized, message="m")
    assert probe.can_proceed is expected


@pytest.mark.unit
def test_sync_attempt_defaults():
    attempt = SyncAttempt(
        location_id="loc_001",
        agency_id="a1",
        outcome=AttemptOutcome.SUCCESS,
        previous_status=SyncStatus.PENDING_UPLOAD,
        resulting_status=SyncStatus.PENDING,
    )

    assert len(attempt.attempt_id) == 26
    assert attempt.attempted_at
    assert attempt.succeeded
    assert attempt.status_changed


@pytest.mark.unit
def test_sync_attempt_ids_are_unique():
    ids = {
        SyncAttempt(
            location_id="loc",
            agency_id="a",
            outcome=AttemptOutcome.FAILURE,
            previous_status=SyncStatus.ACTIVE,
            resulting_status=SyncStatus.ACTIVE,
        ).attempt_id
        for _ in range(20)
    }
    assert len(ids) == 20
