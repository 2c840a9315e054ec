from typing import Any

from ....domain import make_event_name


class EntityMapping:
    """Rename table applied to entity roles when events are aggregated.

    Several events folded into one often use the same role for different
    entities: "bread" in *bread is plastered with butter* and "bread" in
    *sausage is placed on bread*. A mapping gives each of them its own role in
    the aggregated event.

    Example:
        >>> mapping = EntityMapping()
        >>> mapping.set("sausage is placed on bread", "bread", "bread_with_sausage")
        >>> mapping.get("sausage is placed on bread", "bread")
        'bread_with_sausage'
        >>> mapping.get("bread is plastered with butter", "bread")
        'bread'
    """

    def __init__(self) -> None:
        self.rules: dict[str, dict[str, str]] = {}

    def set(self, event_type: Any, original: str, target: str) -> None:
        """Rename role ``original`` of events named ``event_type`` to ``target``.

        ``event_type`` is converted with ``make_event_name``. Overwrites any
        existing rule for the same event type and role.
        """
        self.rules.setdefault(make_event_name(event_type), {})[original] = target

    def get(self, event_type: Any, original: str) -> str:
        """Return the role ``original`` is renamed to, or ``original`` itself."""
        return self.rules.get(make_event_name(event_type), {}).get(original, original)
