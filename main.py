# MarketPrice Ping Client - Main Entry Point
# Logs in to a WebSocket market data gateway, requests one item and keeps
# the connection alive with application-level Ping/Pong

"""
MarketPrice Ping Client

Steps:
- Log in to the WebSocket gateway
- Request market price content for one item (TRI.N by default)
- Print every message sent and received
- Send Ping messages to monitor connection health

Any failure (transport error or close, login stream closed, ping
timeout) ends the process with exit status 1. There is no reconnect.
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import yaml
from dotenv import load_dotenv

from src.connection.exceptions import ClientError
from src.connection.heartbeat_manager import DEFAULT_PING_INTERVAL_MS, HeartbeatMonitor
from src.connection.session import ClientSession
from src.connection.subscription_manager import SubscriptionManager
from src.connection.websocket_client import WebSocketClient
from src.utils.helpers import get_position, get_user
from src.utils.logger import configure_logging, setup_logger

PROJECT_ROOT = Path(__file__).parent

# Environment variable -> (section, key)
ENV_OVERRIDES = {
    'MARKETPRICE_HOSTNAME': ('connection', 'hostname'),
    'MARKETPRICE_PORT': ('connection', 'port'),
    'MARKETPRICE_APP_ID': ('login', 'app_id'),
    'MARKETPRICE_USER': ('login', 'user'),
}

class UsageParser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on bad usage"""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"Error: {message}\n")

def build_arg_parser() -> argparse.ArgumentParser:
    # -h is the hostname, so help is --help only
    parser = UsageParser(
        prog="main.py",
        description="Retrieve JSON market price content over a WebSocket with Ping monitoring.",
        add_help=False,
        allow_abbrev=False
    )
    parser.add_argument('-h', '--hostname', help="WebSocket server host")
    parser.add_argument('-p', '--port', type=int, help="WebSocket server port")
    parser.add_argument('-a', '--app_id', '--appID', dest='app_id', help="ApplicationId used to log in")
    parser.add_argument('-u', '--user', help="User name used to log in")
    parser.add_argument('--help', action='help', help="Show this message and exit")
    return parser

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments

    Exits 0 for --help, 1 for an unknown option or a missing value.
    """
    return build_arg_parser().parse_args(argv)

def default_config() -> dict:
    """Default config matching config.yaml structure"""
    return {
        'connection': {
            'hostname': 'localhost',
            'port': 15000,
            'path': '/WebSocket',
            'subprotocol': 'tr_json2'
        },
        'login': {
            'user': get_user(),
            'app_id': '256',
            'position': None,
            'timeout': 0
        },
        'item': {
            'name': 'TRI.N'
        },
        'heartbeat': {
            'default_ping_interval_ms': DEFAULT_PING_INTERVAL_MS,
            'tick_interval': 1.0
        },
        'logging': {
            'level': 'INFO',
            'file': 'logs/marketprice.log'
        }
    }

def load_config(config_dir: Optional[Path] = None) -> dict:
    """
    Load configuration

    Order (later wins): built-in defaults, config/config.yaml,
    environment (config/secrets.env is loaded first).
    """
    config_dir = config_dir or PROJECT_ROOT / "config"
    load_dotenv(config_dir / "secrets.env")

    config = default_config()
    config_path = config_dir / "config.yaml"
    if config_path.exists():
        with open(config_path) as f:
            loaded = yaml.safe_load(f) or {}
        for section, values in loaded.items():
            if isinstance(values, dict) and isinstance(config.get(section), dict):
                config[section].update(values)
            else:
                config[section] = values

    for env_name, (section, key) in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            config[section][key] = value

    return config

def apply_args(config: dict, args: argparse.Namespace) -> dict:
    """Command-line flags override the loaded config"""
    if args.hostname is not None:
        config['connection']['hostname'] = args.hostname
    if args.port is not None:
        config['connection']['port'] = args.port
    if args.app_id is not None:
        config['login']['app_id'] = args.app_id
    if args.user is not None:
        config['login']['user'] = args.user
    return config

def validate_config(config: dict) -> Tuple[bool, List[str]]:
    """
    Validate configuration structure and values

    Returns:
        (is_valid, errors)
    """
    errors = []

    for section in ('connection', 'login', 'item', 'heartbeat'):
        if not isinstance(config.get(section), dict):
            errors.append(f"Config error: missing '{section}' section")
    if errors:
        return (False, errors)

    try:
        port = int(config['connection'].get('port'))
        if not 1 <= port <= 65535:
            errors.append("Config error: connection.port must be between 1 and 65535")
    except (TypeError, ValueError):
        errors.append("Config error: connection.port must be an integer")

    if not config['connection'].get('hostname'):
        errors.append("Config error: connection.hostname is required")

    if not config['item'].get('name'):
        errors.append("Config error: item.name is required")

    if not config['login'].get('user'):
        errors.append("Config error: login.user is required")

    numeric_checks = [
        ('heartbeat.default_ping_interval_ms', config['heartbeat'].get('default_ping_interval_ms')),
        ('heartbeat.tick_interval', config['heartbeat'].get('tick_interval')),
    ]
    for key, value in numeric_checks:
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            errors.append(f"Config error: {key} must be a positive number")

    timeout = config['login'].get('timeout', 0)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout < 0:
        errors.append("Config error: login.timeout must be zero or a positive number")

    logging_config = config.get('logging') or {}
    if not isinstance(logging_config, dict):
        errors.append("Config error: logging must be a section")
    else:
        level = logging_config.get('level', 'INFO')
        # getLevelName maps known names to their number, anything else to a string
        if not isinstance(level, str) or not isinstance(logging.getLevelName(level.upper()), int):
            errors.append(f"Config error: logging.level {level!r} is not a log level")
        log_file = logging_config.get('file')
        if log_file is not None and not isinstance(log_file, str):
            errors.append("Config error: logging.file must be a path")

    return (len(errors) == 0, errors)

def build_client(config: dict) -> WebSocketClient:
    """Wire the session and WebSocket client from config"""
    connection = config['connection']
    login = config['login']

    subscriptions = SubscriptionManager(
        user=str(login['user']),
        app_id=str(login['app_id']),
        position=login.get('position') or get_position(),
        item=config['item']['name']
    )
    session = ClientSession(
        subscriptions,
        heartbeat=HeartbeatMonitor(int(config['heartbeat']['default_ping_interval_ms'])),
        login_timeout=login.get('timeout', 0)
    )
    return WebSocketClient(
        session,
        hostname=connection['hostname'],
        port=int(connection['port']),
        path=connection.get('path', '/WebSocket'),
        subprotocol=connection.get('subprotocol', 'tr_json2'),
        tick_interval=float(config['heartbeat']['tick_interval'])
    )

async def run_client(config: dict):
    client = build_client(config)
    await client.run()

def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point

    Returns:
        Process exit status (always 1: the client only stops on failure)
    """
    args = parse_args(argv)
    config = apply_args(load_config(), args)

    is_valid, errors = validate_config(config)
    if not is_valid:
        logger = setup_logger("Main")
        logger.error("Configuration validation failed:")
        for error in errors:
            logger.error(f"  - {error}")
        return 1

    logging_config = config.get('logging') or {}
    configure_logging(logging_config.get('level', 'INFO'), logging_config.get('file'))
    logger = setup_logger("Main")

    try:
        asyncio.run(run_client(config))
    except ClientError as e:
        logger.error(str(e))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    return 1

if __name__ == "__main__":
    sys.exit(main())
