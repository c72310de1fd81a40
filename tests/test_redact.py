from __future__ import annotations

from kiloa._redact import redact_for_log


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "node_id": "n1",
        "Authorization": "s3cr3t",
        "token": "s3cr3t",
        "nested": {"X-Api-Key": "abc", "load_1": 0.5},
        "items": [{"cookie": "session=1"}],
    }

    redacted = redact_for_log(payload)
    assert redacted["node_id"] == "n1"
    assert redacted["Authorization"] == "<redacted>"
    assert redacted["token"] == "<redacted>"
    assert redacted["nested"]["X-Api-Key"] == "<redacted>"
    assert redacted["nested"]["load_1"] == 0.5
    assert redacted["items"][0]["cookie"] == "<redacted>"


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_limits_depth() -> None:
    deep: dict = {}
    cursor = deep
    for _ in range(12):
        cursor["child"] = {}
        cursor = cursor["child"]

    redacted = redact_for_log(deep)
    for _ in range(9):
        redacted = redacted["child"]
    assert redacted == "<max-depth>"
