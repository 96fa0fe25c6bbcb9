#!/usr/bin/env python3
# Test Heartbeat Monitor
# Usage: python scripts/test_heartbeat.py  (or: pytest scripts/)

"""
Heartbeat Monitor Test Script

Tests:
1. Regular traffic never triggers a Ping
2. Silence triggers exactly one Ping, then a timeout
3. Traffic after a Ping clears the timeout and reschedules
4. Negotiated interval replaces the default

Pure timer logic, no network required
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.connection.heartbeat_manager import (
    DEFAULT_PING_INTERVAL_MS,
    HeartbeatAction,
    HeartbeatMonitor,
)
from src.utils.logger import setup_logger

# Setup logger
logger = setup_logger("TestHeartbeat", "INFO")

def assert_single_phase(monitor: HeartbeatMonitor):
    assert monitor.next_ping_deadline is None or monitor.pong_deadline is None

def test_start_schedules_first_ping():
    """Opening the connection schedules a Ping a third of the way in"""
    monitor = HeartbeatMonitor()
    assert monitor.ping_interval_ms == DEFAULT_PING_INTERVAL_MS

    monitor.start(0)
    assert monitor.next_ping_deadline == 10000
    assert monitor.pong_deadline is None
    logger.info("✅ First Ping scheduled at interval/3")

def test_regular_traffic_never_pings():
    """Traffic spaced under interval/3 keeps pushing the Ping back"""
    monitor = HeartbeatMonitor(30000)
    monitor.start(0)

    for now in range(0, 120001, 1000):
        if now % 9000 == 0:
            monitor.on_inbound_traffic(now)
        assert monitor.on_tick(now) is HeartbeatAction.NONE
        assert_single_phase(monitor)

    logger.info("✅ No Ping sent while traffic keeps arriving")

def test_silence_sends_one_ping_then_times_out():
    """interval/3 of silence sends one Ping; a full interval more times out"""
    monitor = HeartbeatMonitor(30000)
    monitor.start(0)

    actions = []
    for now in range(1000, 40001, 1000):
        actions.append((now, monitor.on_tick(now)))
        assert_single_phase(monitor)

    pings = [now for now, action in actions if action is HeartbeatAction.SEND_PING]
    timeouts = [now for now, action in actions if action is HeartbeatAction.TIMEOUT]

    assert pings == [10000]
    assert timeouts == [40000]
    assert monitor.pong_deadline == 40000
    logger.info("✅ One Ping at t=10000, timeout at t=40000")

def test_pong_deadline_is_now_plus_interval():
    monitor = HeartbeatMonitor(30000)
    monitor.start(0)

    # Tick lands late: deadline counts from the tick, not the schedule
    assert monitor.on_tick(10400) is HeartbeatAction.SEND_PING
    assert monitor.next_ping_deadline is None
    assert monitor.pong_deadline == 40400
    assert monitor.is_awaiting_pong()

def test_traffic_after_ping_reschedules():
    """Ping at 10000, data at 10500: timeout cleared, next Ping at 20500"""
    monitor = HeartbeatMonitor(30000)
    monitor.start(0)

    assert monitor.on_tick(10000) is HeartbeatAction.SEND_PING
    monitor.on_inbound_traffic(10500)

    assert monitor.pong_deadline is None
    assert monitor.next_ping_deadline == 20500
    assert not monitor.is_awaiting_pong()

    # Nothing happens until the new deadline
    assert monitor.on_tick(20000) is HeartbeatAction.NONE
    assert monitor.on_tick(40000) is HeartbeatAction.SEND_PING
    logger.info("✅ Traffic after Ping clears the timeout")

def test_negotiated_interval():
    """PingTimeout of 20s replaces the 30000 ms default"""
    monitor = HeartbeatMonitor()
    monitor.start(0)

    monitor.on_ping_interval_negotiated(20)
    assert monitor.ping_interval_ms == 20000
    # Existing deadline untouched
    assert monitor.next_ping_deadline == 10000

    monitor.on_inbound_traffic(1000)
    assert monitor.next_ping_deadline == 1000 + 20000 // 3

    assert monitor.on_tick(monitor.next_ping_deadline) is HeartbeatAction.SEND_PING
    assert monitor.pong_deadline == 1000 + 20000 // 3 + 20000
    logger.info("✅ Negotiated interval applied")

def test_no_ping_before_start():
    monitor = HeartbeatMonitor()
    assert monitor.on_tick(100000) is HeartbeatAction.NONE

def main():
    """Run all tests"""
    logger.info("\n" + "=" * 60)
    logger.info("🧪 Heartbeat Monitor Tests")
    logger.info("=" * 60)

    try:
        test_start_schedules_first_ping()
        test_regular_traffic_never_pings()
        test_silence_sends_one_ping_then_times_out()
        test_pong_deadline_is_now_plus_interval()
        test_traffic_after_ping_reschedules()
        test_negotiated_interval()
        test_no_ping_before_start()

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
