from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Tuple

from .constants import MODE_GROUPED, MODE_PER_ALERT, NO_DESCRIPTION, NO_TITLE
from .utils import first_present, from_mapping, non_empty, status_color


class InvalidPayload(ValueError):
    pass


def _as_str_map(value: Any) -> Dict[str, str]:
    if not isinstance(value, Mapping):
        return {}
    return {str(k): v for k, v in value.items() if isinstance(v, str)}


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


@dataclass(frozen=True)
class Alert:
    status: str = ""
    labels: Dict[str, str] = field(default_factory=dict)
    annotations: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Alert":
        return cls(
            status=_as_str(data.get("status")),
            labels=_as_str_map(data.get("labels")),
            annotations=_as_str_map(data.get("annotations")),
        )


@dataclass(frozen=True)
class Notification:
    status: str = ""
    receiver: str = ""
    title: str = ""
    message: str = ""
    external_url: str = ""
    common_annotations: Dict[str, str] = field(default_factory=dict)
    alerts: Tuple[Alert, ...] = ()


class AlertSummary(NamedTuple):
    title: str
    description: str
    status: str
    color: str


def parse_notification(data: Any) -> Notification:
    """Build a Notification from a decoded JSON body.

    Only the top-level shape is checked; missing or oddly typed fields fall
    back to empty values so the title/description chains can move on.
    """
    if not isinstance(data, Mapping):
        raise InvalidPayload("notification body must be a JSON object")

    raw_alerts = data.get("alerts")
    alerts = tuple(
        Alert.from_dict(item)
        for item in (raw_alerts if isinstance(raw_alerts, list) else [])
        if isinstance(item, Mapping)
    )
    return Notification(
        status=_as_str(data.get("status")),
        receiver=_as_str(data.get("receiver")),
        title=_as_str(data.get("title")),
        message=_as_str(data.get("message")),
        external_url=_as_str(data.get("externalURL")),
        common_annotations=_as_str_map(data.get("commonAnnotations")),
        alerts=alerts,
    )


def derive_title(notification: Notification, alert: Optional[Alert] = None) -> str:
    alert = alert or Alert()
    return first_present(
        [
            from_mapping(notification.common_annotations, "summary"),
            from_mapping(alert.annotations, "summary"),
            from_mapping(alert.labels, "alertname"),
            non_empty(notification.title),
        ],
        NO_TITLE,
    )


def derive_description(notification: Notification, alert: Optional[Alert] = None) -> str:
    alert = alert or Alert()
    return first_present(
        [
            from_mapping(notification.common_annotations, "description"),
            from_mapping(alert.annotations, "description"),
            non_empty(notification.message),
        ],
        NO_DESCRIPTION,
    )


def _summarize(notification: Notification, alert: Optional[Alert], status: str) -> AlertSummary:
    return AlertSummary(
        title=derive_title(notification, alert),
        description=derive_description(notification, alert),
        status=status,
        color=status_color(status),
    )


def _grouped(notification: Notification) -> List[AlertSummary]:
    first_alert = notification.alerts[0] if notification.alerts else None
    return [_summarize(notification, first_alert, notification.status)]


def _per_alert(notification: Notification) -> List[AlertSummary]:
    return [
        _summarize(notification, alert, alert.status or notification.status)
        for alert in notification.alerts
    ]


STRATEGIES: Dict[str, Callable[[Notification], List[AlertSummary]]] = {
    MODE_GROUPED: _grouped,
    MODE_PER_ALERT: _per_alert,
}


def interpret(notification: Notification, mode: str = MODE_GROUPED) -> List[AlertSummary]:
    try:
        strategy = STRATEGIES[mode]
    except KeyError:
        raise ValueError(f"unknown processing mode: {mode!r}") from None
    return strategy(notification)
