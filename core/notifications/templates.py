"""Message template loading and rendering."""

from pathlib import Path

import yaml


_templates: dict | None = None


def load_templates() -> dict:
    """
    Load message templates from YAML file.

    Caches templates after first load.
    """
    global _templates
    if _templates is not None:
        return _templates

    yaml_path = Path(__file__).parent / "messages.yaml"
    with open(yaml_path) as f:
        _templates = yaml.safe_load(f)

    return _templates


def render_message(template: str, context: dict) -> str:
    """
    Render a message template with context variables.

    Raises:
        KeyError: If a required variable is missing from context
    """
    return template.format(**context).strip()


def get_message(message_type: str, channel: str, context: dict) -> str:
    """
    Get and render a message for a specific type and channel.

    Args:
        message_type: e.g., "operation_reminder", "operation_broadcast"
        channel: "discord" (DM) or "discord_channel"
        context: Variables to substitute
    """
    templates = load_templates()
    template = templates[message_type][channel]
    return render_message(template, context)


def format_lead_time(hours: float) -> str:
    """Human label for a reminder lead time: 24 -> '24 hours', 0.5 -> '30 minutes'."""
    if hours < 1:
        minutes = round(hours * 60)
        return f"{minutes} minute{'s' if minutes != 1 else ''}"
    if hours == int(hours):
        whole = int(hours)
        return f"{whole} hour{'s' if whole != 1 else ''}"
    return f"{hours:g} hours"


def format_start_time(start_at) -> str:
    """Discord timestamp markup, rendered in each reader's local time."""
    if start_at is None:
        return "TBD"
    return f"<t:{int(start_at.timestamp())}:F>"
