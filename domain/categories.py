from collections.abc import Callable
from dataclasses import dataclass, field

from .validation import ensure_identifier

NAME_KEY_PREFIX = "categories."


def name_key_for(category_id: str) -> str:
    return f"{NAME_KEY_PREFIX}{category_id}"


@dataclass(frozen=True)
class Subcategory:
    id: str
    display_name_key: str | None = None
    legacy_display_name: str | None = None
    icon: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", ensure_identifier(self.id, "subcategory id"))


@dataclass(frozen=True)
class Category:
    id: str
    icon: str
    display_name_key: str | None = None
    legacy_display_name: str | None = None
    color: str | None = None
    subcategories: tuple[Subcategory, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", ensure_identifier(self.id, "category id"))
        object.__setattr__(self, "subcategories", tuple(self.subcategories))

    def subcategory(self, subcategory_id: str) -> Subcategory | None:
        for sub in self.subcategories:
            if sub.id == subcategory_id:
                return sub
        return None


def display_name(item: Category | Subcategory, translate: Callable[[str], str]) -> str:
    """Translated name, falling back to the legacy name and then the id.

    A translator that echoes the key back signals a missing translation.
    """
    if item.display_name_key:
        translated = translate(item.display_name_key)
        if translated and translated != item.display_name_key:
            return translated
    return item.legacy_display_name or item.id


def find_category(categories: list[Category], category_id: str) -> Category | None:
    for category in categories:
        if category.id == category_id:
            return category
    return None


def _seed(category_id: str, icon: str, color: str, subcategories: tuple[str, ...] = ()) -> Category:
    return Category(
        id=category_id,
        icon=icon,
        display_name_key=name_key_for(category_id),
        color=color,
        subcategories=tuple(
            Subcategory(id=sub_id, display_name_key=name_key_for(sub_id))
            for sub_id in subcategories
        ),
    )


def seed_categories() -> list[Category]:
    return [
        _seed("lon", "💰", "#16a34a"),
        _seed("bolig", "🏠", "#2563eb", ("husleje", "el", "internet", "forsikring")),
        _seed("mad", "🍽️", "#f97316", ("dagligvarer", "restaurant", "cafe")),
        _seed("transport", "🚗", "#0ea5e9", ("benzin", "kollektiv", "parkering")),
        _seed("shopping", "🛍️", "#db2777", ("toj", "elektronik", "diverse")),
        _seed("fritid", "🎮", "#8b5cf6", ("streaming", "sport", "hobby")),
        _seed("sundhed", "💊", "#ef4444", ("apotek", "laege")),
        _seed("andet", "📦", "#64748b"),
    ]
