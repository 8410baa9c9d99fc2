# nimbus/models/__init__.py
from nimbus.models.Users import AccessLevel, User
from nimbus.models.Stations import Parameter, ParameterType, Station
from nimbus.models.Measurements import Measurement
from nimbus.models.Alerts import Alert, AlertRule, alert_subscription
from nimbus.models.Alarms import Alarm
from nimbus.models.StationActivity import (
    ProcessingLog,
    StationLog,
    StationStatus,
    StationStatusValue,
)

__all__ = [
    "AccessLevel",
    "Alarm",
    "Alert",
    "AlertRule",
    "Measurement",
    "Parameter",
    "ParameterType",
    "ProcessingLog",
    "Station",
    "StationLog",
    "StationStatus",
    "StationStatusValue",
    "User",
    "alert_subscription",
]
