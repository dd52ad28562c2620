"""Toast-style user notifications carried through Flask's flash queue."""
from flask import flash, get_flashed_messages

SEVERITIES: tuple[str, ...] = ("default", "destructive")


def notify(title: str, description: str = "", severity: str = "default") -> None:
    if severity not in SEVERITIES:
        raise ValueError(f"Unknown notification severity: {severity}")
    flash({"title": title, "description": description}, severity)


def notify_error(description: str, title: str = "Error") -> None:
    notify(title, description, "destructive")


def pending_notifications() -> list[dict]:
    """Drain queued notifications for rendering, oldest first."""
    toasts = []
    for severity, message in get_flashed_messages(with_categories=True):
        if isinstance(message, dict):
            toasts.append({"severity": severity, **message})
        else:
            toasts.append({"severity": severity if severity in SEVERITIES else "default", "title": str(message), "description": ""})
    return toasts
