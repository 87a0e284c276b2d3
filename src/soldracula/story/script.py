from __future__ import annotations

"""The fixed dialogue appended to every verified asset's story.

Order matters: the items form a conversation and must land in exactly this
sequence.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

Json = Dict[str, Any]

ITEM_KIND = "item"


@dataclass(frozen=True)
class StoryDisplay:
    label: str
    description: str
    help_text: str
    img: str

    def to_json(self) -> Json:
        return {
            "label": self.label,
            "description": self.description,
            "helpText": self.help_text,
            "img": self.img,
        }


@dataclass(frozen=True)
class StoryItem:
    display: StoryDisplay
    kind: str = ITEM_KIND
    data: Json = field(default_factory=dict)

    def to_json(self) -> Json:
        return {"type": self.kind, "display": self.display.to_json(), "data": dict(self.data)}


_HELP = "Castlevania: Symphony of the Night"
_RICHTER_IMG = "http://soldracula.is/static/richter.jpg"
_DRACULA_IMG = "http://soldracula.is/static/dracula.jpg"


def _richter(line: str) -> StoryItem:
    return StoryItem(display=StoryDisplay("Richter:", line, _HELP, _RICHTER_IMG))


def _dracula(line: str) -> StoryItem:
    return StoryItem(display=StoryDisplay("Dracula:", line, _HELP, _DRACULA_IMG))


DRACULA_SCRIPT: Tuple[StoryItem, ...] = (
    _richter("Die monster. You don’t belong in this world!"),
    _dracula(
        "It was not by my hand I was once again given flesh. "
        "I was brought here by humans who wished to pay me tribute!"
    ),
    _richter("Tribute!? You steal men’s souls, and make them your slaves!"),
    _dracula("Perhaps the same could be said of all religions… "),
    _richter("Your words are as empty as your soul! Mankind ill needs a savior such as you!"),
    _dracula("What is a man? A miserable little pile of secrets. But enough talk… Have at you!"),
)
