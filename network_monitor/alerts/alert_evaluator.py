"""
Threshold evaluation of device statistics.
"""

from typing import Optional

from ..core.data_models import AlertPolicy
from ..core.host_statistics import StatisticsSnapshot
from ..utils.error_handler import ValidationError


def should_alert(snapshot: StatisticsSnapshot, policy: AlertPolicy) -> bool:
    """
    Decide whether a device's statistics breach the policy.

    Values exactly at a threshold do not alert.

    Args:
        snapshot: Statistics of one device
        policy: Alert thresholds

    Returns:
        True if availability is below the threshold or the latest response
        time is above the maximum

    Raises:
        ValidationError: If policy is None
    """
    if policy is None:
        raise ValidationError("Alert policy is required")
    return (
        snapshot.availability_percent < policy.availability_threshold_percent
        or snapshot.last_response_time_ms > policy.max_response_time_ms
    )


class AlertEvaluator:
    """
    Applies an AlertPolicy and builds the alert message.
    """

    def __init__(self, policy: AlertPolicy):
        if policy is None:
            raise ValidationError("Alert policy is required")
        self.policy = policy

    def should_alert(self, snapshot: StatisticsSnapshot) -> bool:
        return should_alert(snapshot, self.policy)

    @staticmethod
    def format_message(snapshot: StatisticsSnapshot) -> str:
        return (
            f"Performance alert for {snapshot.device_id} - "
            f"Availability: {snapshot.availability_percent:.2f}%, "
            f"Response time: {snapshot.last_response_time_ms}ms"
        )

    def evaluate(self, snapshot: StatisticsSnapshot) -> Optional[str]:
        """
        Return the alert message for a breaching snapshot, or None.
        """
        if self.should_alert(snapshot):
            return self.format_message(snapshot)
        return None
