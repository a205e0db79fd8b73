import logging

from domain.currency import CurrencyService
from domain.money import CurrencyInfo, get_currency_info
from domain.validation import ensure_locale_preference, ensure_theme
from infrastructure.state_store import AppStateStore
from infrastructure.storage_keys import StorageKey

logger = logging.getLogger(__name__)


class PreferencesService:
    """Theme and locale preferences bound to one store.

    Replaces app-wide mutable singletons: every consumer receives the service
    instance it should read from.
    """

    def __init__(self, store: AppStateStore):
        self._keys = store.keys

    def get_theme(self) -> str:
        saved = self._keys.get(StorageKey.THEME)
        return saved if saved in ("light", "dark", "auto") else "auto"

    def set_theme(self, theme: str) -> None:
        self._keys.set(StorageKey.THEME, ensure_theme(theme))
        logger.info("Theme set to %s", theme)

    def get_locale(self) -> str:
        saved = self._keys.get(StorageKey.LOCALE)
        return saved if saved in ("da", "en", "auto") else "auto"

    def set_locale(self, locale: str) -> None:
        self._keys.set(StorageKey.LOCALE, ensure_locale_preference(locale))
        logger.info("Locale set to %s", locale)

    def effective_locale(self, system_language: str | None = None) -> str:
        """Resolve ``auto`` against the host language; anything not Danish is English."""
        locale = self.get_locale()
        if locale != "auto":
            return locale
        language = (system_language or "").strip().lower()
        return "da" if language.startswith("da") else "en"

    def is_dark(self, system_prefers_dark: bool = False) -> bool:
        theme = self.get_theme()
        if theme == "auto":
            return system_prefers_dark
        return theme == "dark"


class CurrencyPreferenceService:
    """Read side of the user's default currency."""

    def __init__(self, store: AppStateStore, currency: CurrencyService | None = None):
        self._store = store
        self._currency = currency or CurrencyService()

    def current_currency(self) -> str:
        data = self._store.load()
        if data is None:
            return "DKK"
        return get_currency_info(str(data.get("defaultCurrency") or "DKK")).code

    def supported_currencies(self) -> list[CurrencyInfo]:
        return [get_currency_info(code) for code in self._currency.supported_currencies]

    def currency_info(self, code: str) -> CurrencyInfo:
        return get_currency_info(code)
