"""Select-option normalisation.

Question options arrive from admin input and seeded data as either plain
strings or ``{"value": ..., "label": ...}`` mappings (sometimes mixed).
Everything downstream consumes one shape: ``[{"value": str, "label": str}]``.
"""

from pathfinder.core.exceptions import ValidationError


def normalize_option(option) -> dict[str, str]:
    """Normalise a single option to ``{"value": str, "label": str}``."""
    if isinstance(option, dict):
        if "value" not in option and "label" not in option:
            raise ValidationError("Option must have a value or a label", details={"options": str(option)})
        value = option.get("value", option.get("label"))
        label = option.get("label", value)
        return {"value": str(value), "label": str(label)}
    if isinstance(option, (str, int, float)) and not isinstance(option, bool):
        text = str(option)
        return {"value": text, "label": text}
    raise ValidationError("Unsupported option type", details={"options": type(option).__name__})


def normalize_options(options) -> list[dict[str, str]]:
    """Normalise a list of options; ``None`` becomes an empty list.

    Duplicate values keep their first occurrence.
    """
    if options is None:
        return []
    if not isinstance(options, (list, tuple)):
        raise ValidationError("Options must be a list", details={"options": "Expected a list."})
    seen = set()
    result = []
    for option in options:
        normalized = normalize_option(option)
        if normalized["value"] in seen:
            continue
        seen.add(normalized["value"])
        result.append(normalized)
    return result


def option_values(options) -> list[str]:
    return [o["value"] for o in normalize_options(options)]
