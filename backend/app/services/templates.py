"""
TenderDesk - Bidding Template Rendering

Placeholders: {{currentDate}}, {{tender.<field>}}, {{client.<field>}},
{{currentUser.<field>}}. Unknown placeholders are left in place; known
fields with empty values render as an empty string.
"""

import re
from datetime import date
from typing import Any, Dict, Optional

PLACEHOLDER = re.compile(r"{{\s*(tender|client|currentUser)\.(\w+)\s*}}")


def _india_date(day: date) -> str:
    return f"{day.day}/{day.month}/{day.year}"


def render_template(
    content: str,
    tender: Dict[str, Any],
    client: Optional[Dict[str, Any]],
    current_user: Dict[str, Any],
    today: Optional[date] = None,
) -> str:
    sources = {"tender": tender, "client": client or {}, "currentUser": current_user}
    rendered = (content or "").replace("{{currentDate}}", _india_date(today or date.today()))

    def substitute(match: "re.Match") -> str:
        data = sources[match.group(1)]
        key = match.group(2)
        if key not in data:
            return match.group(0)
        value = data[key]
        return "" if value is None or value == "" else str(value)

    return PLACEHOLDER.sub(substitute, rendered)
