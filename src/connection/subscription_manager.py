# Subscription Manager - Outbound Requests
# Builds the login, item, Ping and Pong messages sent to the gateway

"""
Subscription Manager Module

Responsibilities:
- Build the login request (stream ID 1)
- Build the item request for the configured instrument (stream ID 2)
- Build Ping and Pong messages
"""

from typing import Any, Dict

LOGIN_STREAM_ID = 1
ITEM_STREAM_ID = 2

PING_MESSAGE = {"Type": "Ping"}
PONG_MESSAGE = {"Type": "Pong"}

class SubscriptionManager:
    """
    Builds the requests for one login and one item stream
    """

    def __init__(self, user: str, app_id: str, position: str, item: str = "TRI.N"):
        self.user = user
        self.app_id = app_id
        self.position = position
        self.item = item

    def login_request(self) -> Dict[str, Any]:
        """Login request for the configured user"""
        return {
            "ID": LOGIN_STREAM_ID,
            "Domain": "Login",
            "Key": {
                "Name": self.user,
                "Elements": {
                    "ApplicationId": self.app_id,
                    "Position": self.position
                }
            }
        }

    def item_request(self) -> Dict[str, Any]:
        """MarketPrice request for the configured item"""
        return {
            "ID": ITEM_STREAM_ID,
            "Key": {"Name": self.item}
        }

    @staticmethod
    def ping() -> Dict[str, Any]:
        return dict(PING_MESSAGE)

    @staticmethod
    def pong() -> Dict[str, Any]:
        return dict(PONG_MESSAGE)
