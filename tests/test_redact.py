from __future__ import annotations

from pyartchain._redact import redact_for_log, token_fingerprint


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "username": "mai",
        "password": "pw",
        "access_token": "tok",
        "nested": {"accessToken": "tok", "Authorization": "Bearer tok"},
        "items": [{"token": "tok"}, "plain"],
    }

    redacted = redact_for_log(payload)
    assert redacted["username"] == "mai"
    assert redacted["password"] == "<redacted>"
    assert redacted["access_token"] == "<redacted>"
    assert redacted["nested"]["accessToken"] == "<redacted>"
    assert redacted["nested"]["Authorization"] == "<redacted>"
    assert redacted["items"] == [{"token": "<redacted>"}, "plain"]


def test_redact_for_log_leaves_plain_values_alone() -> None:
    form = {"username": "mai", "fullName": "Mai Tran", "role": "COMPETITOR"}

    assert redact_for_log(form) == form
    assert redact_for_log("text") == "text"
    assert redact_for_log(None) is None
    assert redact_for_log(42) == 42


def test_token_fingerprint_is_stable_and_opaque() -> None:
    fingerprint = token_fingerprint("secret-token")

    assert fingerprint == token_fingerprint("secret-token")
    assert fingerprint != token_fingerprint("other-token")
    assert fingerprint is not None
    assert "secret" not in fingerprint
    assert len(fingerprint) == 16
    assert token_fingerprint(None) is None
    assert token_fingerprint("") is None
