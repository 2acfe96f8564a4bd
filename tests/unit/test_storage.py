"""Unit tests for optional bucket provisioning (mocked HTTP)."""

from __future__ import annotations

from unittest.mock import Mock

import pytest
import requests

from repo_provisioner.provisioner.storage.client import BUCKETS, BucketSpec, StorageClient
from repo_provisioner.provisioner.workflow.stages import provision_buckets

ENDPOINT = "https://project.supabase.co"
KEY = "service-role-key-value"


def _session(post: Mock) -> requests.Session:
    session = requests.Session()
    session.post = post  # type: ignore[method-assign]
    return session


def _created() -> Mock:
    resp = Mock()
    resp.status_code = 200
    resp.raise_for_status.return_value = None
    return resp


@pytest.mark.parametrize("endpoint,key", [("", KEY), (ENDPOINT, ""), ("  ", "  ")])
def test_blank_endpoint_or_key_skips_without_requests(endpoint: str, key: str) -> None:
    post = Mock()

    steps = provision_buckets(endpoint=endpoint, service_key=key, session=_session(post))

    assert steps.ok
    assert "skipping" in steps.results[0].message
    post.assert_not_called()


def test_buckets_are_created_with_expected_request() -> None:
    post = Mock(return_value=_created())
    session = _session(post)

    steps = provision_buckets(endpoint=ENDPOINT + "/", service_key=KEY, session=session)

    assert steps.ok
    assert [c.kwargs["json"] for c in post.call_args_list] == [
        {"name": "case-files", "public": False},
        {"name": "reports", "public": False},
    ]
    assert all(
        c.args == (f"{ENDPOINT}/rest/v1/storage/buckets",) for c in post.call_args_list
    )
    for call in post.call_args_list:
        assert call.kwargs["headers"]["apikey"] == KEY
        assert call.kwargs["headers"]["Authorization"] == f"Bearer {KEY}"
        assert call.kwargs["headers"]["Content-Type"] == "application/json"


def test_request_failure_is_a_warning_and_continues() -> None:
    post = Mock(side_effect=[requests.ConnectionError("connection refused"), _created()])

    steps = provision_buckets(endpoint=ENDPOINT, service_key=KEY, session=_session(post))

    assert post.call_count == 2
    assert [r.ok for r in steps.results] == [False, True]
    failure = steps.results[0]
    assert "connection refused" in failure.message
    assert "case-files" in failure.fallback


def test_http_error_is_reported() -> None:
    resp = Mock()
    resp.raise_for_status.side_effect = requests.HTTPError("409 Client Error: Conflict")
    post = Mock(return_value=resp)

    steps = provision_buckets(
        endpoint=ENDPOINT,
        service_key=KEY,
        buckets=[BucketSpec(name="reports")],
        session=_session(post),
    )

    assert not steps.ok
    assert "409" in steps.failures[0].message


def test_service_key_never_appears_in_results() -> None:
    post = Mock(side_effect=requests.ConnectionError("boom"))

    steps = provision_buckets(endpoint=ENDPOINT, service_key=KEY, session=_session(post))

    for result in steps.results:
        assert KEY not in result.message
        assert KEY not in str(result.details)
        assert KEY not in result.fallback


def test_client_requires_endpoint_and_key() -> None:
    with pytest.raises(ValueError):
        StorageClient(endpoint="", service_key=KEY)
    with pytest.raises(ValueError):
        StorageClient(endpoint=ENDPOINT, service_key=" ")


def test_default_buckets_are_private() -> None:
    assert [(b.name, b.public) for b in BUCKETS] == [("case-files", False), ("reports", False)]


def test_injected_session_is_not_mutated_or_closed() -> None:
    post = Mock(return_value=_created())
    session = _session(post)
    session.close = Mock()  # type: ignore[method-assign]

    steps = provision_buckets(endpoint=ENDPOINT, service_key=KEY, session=session)

    assert steps.ok
    assert "apikey" not in session.headers
    assert "Authorization" not in session.headers
    assert KEY not in str(dict(session.headers))
    session.close.assert_not_called()


def test_owned_session_is_closed(monkeypatch: pytest.MonkeyPatch) -> None:
    session = Mock(spec=requests.Session)
    monkeypatch.setattr(requests, "Session", Mock(return_value=session))

    client = StorageClient(endpoint=ENDPOINT, service_key=KEY)
    client.close()

    session.close.assert_called_once_with()
