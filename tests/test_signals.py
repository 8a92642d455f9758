import pytest

pytest.importorskip("PySide6")

from fsclient.session import FileSession  # noqa: E402
from fsclient.ui.signals import SessionSignals  # noqa: E402


async def test_signals_follow_session_changes(session: FileSession) -> None:
    bridge = SessionSignals(session)
    states, errors, loading = [], [], []
    bridge.state_changed.connect(states.append)
    bridge.error_changed.connect(errors.append)
    bridge.loading_changed.connect(loading.append)

    await session.navigate_to("missing")
    session.clear_error()

    assert states[-1] is session.state
    assert errors == ["directory not found: missing", ""]
    assert loading == [True, False]


async def test_detach_stops_emitting(session: FileSession) -> None:
    bridge = SessionSignals(session)
    states = []
    bridge.state_changed.connect(states.append)
    bridge.detach()

    await session.fetch_listing("")

    assert states == []
