"""Inline keyboard builder.

Produces the JSON string passed unchanged as ``reply_markup``.
"""

import json
from typing import Any, Dict, Iterable, List, Union

from bale.models import InlineKeyboardButton

Button = Union[InlineKeyboardButton, Dict[str, Any]]


def _button_dict(button: Button) -> Dict[str, Any]:
    if isinstance(button, InlineKeyboardButton):
        return button.model_dump(exclude_none=True)
    return InlineKeyboardButton.model_validate(button).model_dump(exclude_none=True)


def inline_keyboard(rows: Iterable[Iterable[Button]]) -> str:
    """Serialize ordered rows of buttons into an ``inline_keyboard`` markup.

    Example::

        inline_keyboard([[{"text": "Help", "callback_data": "help"}]])
        # '{"inline_keyboard": [[{"text": "Help", "callback_data": "help"}]]}'

    Raises:
        pydantic.ValidationError: If a button lacks ``text``.
    """
    layout: List[List[Dict[str, Any]]] = [[_button_dict(b) for b in row] for row in rows]
    return json.dumps({"inline_keyboard": layout}, ensure_ascii=False)
