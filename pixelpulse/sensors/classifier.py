import re
from typing import Any, Dict, Optional

SEMANTIC_TAGS = ("button", "a", "input")
SEMANTIC_CLASS = re.compile(r"btn|button|link|cta|click", re.IGNORECASE)
OVERRIDE_ATTR = "data-pp"

TEXT_LIMIT = 80
CLASS_LIMIT = 5


def _str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def resolve_target(el: Any) -> Any:
    """Nearest ancestor tagged with data-pp wins over the raw event target."""
    try:
        tagged = el.closest(OVERRIDE_ATTR)
    except Exception:
        tagged = None
    return tagged or el


def element_info(el: Any) -> Optional[Dict[str, Any]]:
    """
    Describe a DOM node: tag, visible text, id, first classes, a short
    selector (#id > .class > tag) and whether it looks clickable.
    Returns None for a missing node; never raises.
    """
    if el is None:
        return None
    try:
        tag = _str(getattr(el, "tag", "")).lower()
        text = _str(getattr(el, "text", ""))[:TEXT_LIMIT]
        el_id = _str(getattr(el, "id", ""))
        raw_cls = getattr(el, "class_list", None) or []
        cls = [c for c in raw_cls if isinstance(c, str)][:CLASS_LIMIT]

        if el_id:
            selector = "#" + el_id
        elif cls:
            selector = "." + cls[0]
        else:
            selector = tag

        get_attr = getattr(el, "get_attribute", None)
        attr = get_attr if callable(get_attr) else (lambda name: None)
        is_semantic = bool(
            tag in SEMANTIC_TAGS
            or getattr(el, "onclick", None)
            or attr("onclick")
            or attr("role") == "button"
            or any(SEMANTIC_CLASS.search(c) for c in cls)
        )
    except Exception:
        return None

    return {
        "tag": tag,
        "text": text,
        "id": el_id,
        "cls": cls,
        "selector": selector,
        "isSemantic": is_semantic,
    }
