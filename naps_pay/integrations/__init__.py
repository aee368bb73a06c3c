"""
External integrations.
"""

from naps_pay.integrations.gateway_notifier import (
    NOTIFICATION_ENDPOINT,
    GatewayNotifier,
    build_notification,
)

__all__ = ["NOTIFICATION_ENDPOINT", "GatewayNotifier", "build_notification"]
