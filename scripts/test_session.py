#!/usr/bin/env python3
# Test Client Session
# Usage: python scripts/test_session.py  (or: pytest scripts/)

"""
Client Session Test Script

Tests:
1. Login request on open
2. Login refresh -> item request, negotiated PingTimeout
3. Login stream closed is fatal
4. Ping -> exactly one Pong, timers reset
5. Ping timeout and login timeout

No server required
"""

import json
import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.connection.exceptions import LoginStreamClosedError, LoginTimeoutError, PingTimeoutError
from src.connection.session import ClientSession, ProtocolState
from src.connection.subscription_manager import SubscriptionManager
from src.processors.message_parser import MessageParser
from src.utils.logger import setup_logger

# Setup logger
logger = setup_logger("TestSession", "INFO")

LOGIN_REFRESH = {
    "ID": 1,
    "Type": "Refresh",
    "Domain": "Login",
    "State": {"Stream": "Open", "Data": "Ok"},
    "Elements": {"PingTimeout": 20}
}

def make_session(login_timeout: float = 0) -> ClientSession:
    subscriptions = SubscriptionManager(user="alice", app_id="256", position="10.0.0.5")
    return ClientSession(subscriptions, login_timeout=login_timeout)

def frame(*messages):
    return MessageParser().parse(json.dumps(list(messages)))

def test_open_sends_login():
    session = make_session()
    assert session.state is ProtocolState.CONNECTING

    outbound = session.on_open(0)
    assert outbound == [{
        "ID": 1,
        "Domain": "Login",
        "Key": {
            "Name": "alice",
            "Elements": {"ApplicationId": "256", "Position": "10.0.0.5"}
        }
    }]
    assert session.state is ProtocolState.AWAITING_LOGIN
    assert session.heartbeat.next_ping_deadline == 10000
    logger.info("✅ Login request sent on open")

def test_login_refresh_requests_item():
    session = make_session()
    session.on_open(0)

    outbound = session.on_frame(frame(LOGIN_REFRESH), 500)
    assert outbound == [{"ID": 2, "Key": {"Name": "TRI.N"}}]
    assert session.state is ProtocolState.SUBSCRIBED
    assert session.logged_in
    assert session.heartbeat.ping_interval_ms == 20000
    # Rescheduled with the negotiated interval
    assert session.heartbeat.next_ping_deadline == 500 + 20000 // 3
    logger.info("✅ Logged in, item requested, PingTimeout=20 -> 20000 ms")

def test_login_refresh_without_state():
    session = make_session()
    session.on_open(0)

    refresh = {"Type": "Refresh", "Domain": "Login", "Elements": {"PingTimeout": 30}}
    assert session.on_frame(frame(refresh), 100) == [{"ID": 2, "Key": {"Name": "TRI.N"}}]
    assert session.state is ProtocolState.SUBSCRIBED

def test_second_login_refresh_ignored():
    session = make_session()
    session.on_open(0)
    session.on_frame(frame(LOGIN_REFRESH), 100)

    assert session.on_frame(frame(LOGIN_REFRESH), 200) == []
    assert session.state is ProtocolState.SUBSCRIBED

def test_missing_ping_timeout_keeps_default():
    session = make_session()
    session.on_open(0)

    refresh = {"Type": "Refresh", "Domain": "Login", "State": {"Stream": "Open", "Data": "Ok"}}
    assert session.on_frame(frame(refresh), 100) == [{"ID": 2, "Key": {"Name": "TRI.N"}}]
    assert session.heartbeat.ping_interval_ms == 30000

def test_login_data_not_ok_waits():
    session = make_session()
    session.on_open(0)

    refresh = {"Type": "Refresh", "Domain": "Login", "State": {"Stream": "Open", "Data": "Suspect"}}
    assert session.on_frame(frame(refresh), 100) == []
    assert session.state is ProtocolState.AWAITING_LOGIN

def test_login_stream_closed_is_fatal():
    session = make_session()
    session.on_open(0)

    refresh = {
        "Type": "Refresh",
        "Domain": "Login",
        "State": {"Stream": "Closed", "Data": "Suspect", "Text": "Not entitled"}
    }
    with pytest.raises(LoginStreamClosedError) as exc_info:
        session.on_frame(frame(refresh), 100)
    assert exc_info.value.stream == "Closed"
    assert "Not entitled" in str(exc_info.value)
    logger.info("✅ Closed login stream is fatal")

def test_ping_answered_with_one_pong():
    """[{"Type":"Ping"}] -> exactly one Pong, timers reset"""
    session = make_session()
    session.on_open(0)
    session.on_frame(frame(LOGIN_REFRESH), 0)

    assert session.on_tick(20000 // 3) == [{"Type": "Ping"}]
    assert session.heartbeat.is_awaiting_pong()

    outbound = session.on_frame(frame({"Type": "Ping"}), 7000)
    assert outbound == [{"Type": "Pong"}]
    assert session.heartbeat.pong_deadline is None
    assert session.heartbeat.next_ping_deadline == 7000 + 20000 // 3
    assert session.state is ProtocolState.SUBSCRIBED
    logger.info("✅ Ping answered with one Pong")

def test_ping_before_login_answered():
    session = make_session()
    session.on_open(0)

    assert session.on_frame(frame({"Type": "Ping"}), 100) == [{"Type": "Pong"}]
    assert session.state is ProtocolState.AWAITING_LOGIN

def test_item_messages_ignored():
    session = make_session()
    session.on_open(0)
    session.on_frame(frame(LOGIN_REFRESH), 0)

    item_refresh = {"ID": 2, "Type": "Refresh", "Fields": {"BID": 1.0}}
    update = {"ID": 2, "Type": "Update", "Fields": {"BID": 1.1}}
    assert session.on_frame(frame(item_refresh, update), 100) == []

def test_tick_sends_ping_then_times_out():
    session = make_session()
    session.on_open(0)

    assert session.on_tick(9000) == []
    assert session.on_tick(10000) == [{"Type": "Ping"}]
    assert session.on_tick(39000) == []
    with pytest.raises(PingTimeoutError) as exc_info:
        session.on_tick(40000)
    assert exc_info.value.interval_ms == 30000
    logger.info("✅ Unanswered Ping times out")

def test_login_timeout():
    session = make_session(login_timeout=5)
    session.on_open(1000)

    assert session.on_tick(5000) == []
    with pytest.raises(LoginTimeoutError):
        session.on_tick(6000)

def test_login_timeout_disabled_by_default():
    session = make_session()
    session.on_open(0)
    session.on_frame(frame({"Type": "Pong"}), 9000)
    # No login yet, but no login timeout either
    assert session.on_tick(15000) == []

def main():
    """Run all tests"""
    logger.info("\n" + "=" * 60)
    logger.info("🧪 Client Session Tests")
    logger.info("=" * 60)

    try:
        test_open_sends_login()
        test_login_refresh_requests_item()
        test_login_refresh_without_state()
        test_second_login_refresh_ignored()
        test_missing_ping_timeout_keeps_default()
        test_login_data_not_ok_waits()
        test_login_stream_closed_is_fatal()
        test_ping_answered_with_one_pong()
        test_ping_before_login_answered()
        test_item_messages_ignored()
        test_tick_sends_ping_then_times_out()
        test_login_timeout()
        test_login_timeout_disabled_by_default()

        logger.info("\n" + "=" * 60)
        logger.info("✅ ALL TESTS COMPLETED SUCCESSFULLY!")
        logger.info("=" * 60)

    except AssertionError as e:
        logger.error(f"\n❌ Test failed: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)

if __name__ == "__main__":
    main()
