# src/models.py
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import dates

DEFAULT_HABIT_ICON = "PersonStanding"


class Mood(str, Enum):
    SUPER_HAPPY = "super_happy"
    HAPPY = "happy"
    NEUTRAL = "neutral"
    SAD = "sad"
    DEPRESSED = "depressed"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()

    @property
    def emoji(self) -> str:
        return MOOD_EMOJI[self]

    @classmethod
    def parse(cls, value) -> "Mood":
        """Accept a Mood, its value or its label ("Super Happy"); raise ValueError otherwise."""
        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip().lower().replace(" ", "_").replace("-", "_")
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Unknown mood: {value!r}") from None


MOOD_EMOJI = {
    Mood.SUPER_HAPPY: "😄",
    Mood.HAPPY: "🙂",
    Mood.NEUTRAL: "😐",
    Mood.SAD: "😢",
    Mood.DEPRESSED: "😞",
}


@dataclass
class Section:
    id: str
    name: str
    icon: str = ""

    @classmethod
    def from_row(cls, row: dict) -> "Section":
        return cls(id=row["id"], name=row["name"], icon=row.get("icon") or "")

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "icon": self.icon}


@dataclass
class Habit:
    id: str
    text: str
    section_id: str
    created_at: str
    icon: str = DEFAULT_HABIT_ICON
    completions: List[str] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: dict) -> "Habit":
        return cls(
            id=row["id"],
            text=row["text"],
            section_id=row["divider_id"],
            icon=row.get("icon") or DEFAULT_HABIT_ICON,
            created_at=dates.date_key(dates.parse_timestamp(row["created_at"])),
            completions=list(row.get("completions") or []),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "divider_id": self.section_id,
            "icon": self.icon,
            "created_at": self.created_at,
            "completions": list(self.completions),
        }


@dataclass
class MoodNote:
    id: str
    date: str
    mood: Mood
    note: str = ""
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "MoodNote":
        return cls(
            id=row["id"],
            date=row["date"],
            mood=Mood.parse(row["mood"]),
            note=row.get("note") or "",
            created_at=row.get("created_at"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date,
            "mood": self.mood.value,
            "note": self.note,
            "created_at": self.created_at,
        }


@dataclass
class Profile:
    user_id: str
    name: Optional[str] = None
    interests: List[str] = field(default_factory=list)
    onboarding_complete: bool = False

    @classmethod
    def from_row(cls, row: dict) -> "Profile":
        return cls(
            user_id=row["user_id"],
            name=row.get("name"),
            interests=list(row.get("interests") or []),
            onboarding_complete=bool(row.get("onboarding_complete")),
        )

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "name": self.name,
            "interests": list(self.interests),
            "onboarding_complete": self.onboarding_complete,
        }
