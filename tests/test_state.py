import logging
from unittest.mock import MagicMock

from presence_client.errors import AuthErrorKind
from presence_client.state import SessionPublisher, SessionState


def test_listeners_run_in_subscription_order():
    publisher = SessionPublisher()
    seen = []
    publisher.subscribe(lambda s: seen.append(("a", s.is_loading)))
    publisher.subscribe(lambda s: seen.append(("b", s.is_loading)))

    publisher.publish(SessionState(is_loading=True))

    assert seen == [("a", True), ("b", True)]


def test_unsubscribe_stops_delivery():
    publisher = SessionPublisher()
    seen = []
    handle = publisher.subscribe(seen.append)
    publisher.unsubscribe(handle)
    publisher.unsubscribe(handle)

    publisher.publish(SessionState())

    assert seen == []
    assert len(publisher) == 0


def test_failing_listener_does_not_block_others(caplog):
    publisher = SessionPublisher()
    seen = []

    def broken(state):
        raise RuntimeError("boom")

    publisher.subscribe(broken)
    publisher.subscribe(seen.append)

    with caplog.at_level(logging.ERROR, logger="presence_client"):
        publisher.publish(SessionState(is_initialized=True))

    assert seen == [SessionState(is_initialized=True)]
    assert "listener" in caplog.text


def test_state_repr_hides_token():
    state = SessionState(token="super-secret", is_authenticated=True, error=AuthErrorKind.STORAGE_ERROR)

    text = repr(state)

    assert "super-secret" not in text
    assert "<set>" in text
    assert "storage_error" in text


def test_error_kind_compares_with_plain_string():
    assert AuthErrorKind.INVALID_CREDENTIALS == "invalid_credentials"
    assert str(AuthErrorKind.NO_SAVED_CREDENTIALS) == "no_saved_credentials"
    assert AuthErrorKind.CONNECTION_ERROR.message


def test_publish_passes_the_snapshot_itself():
    publisher = SessionPublisher()
    listener = MagicMock()
    publisher.subscribe(listener)
    state = SessionState(token="tok", is_authenticated=True)

    publisher.publish(state)

    listener.assert_called_once_with(state)
