from enum import Enum
from PySide6.QtCore import QLocale, QObject
from qfluentwidgets import (
    QConfig,
    qconfig,
    ConfigItem,
    OptionsConfigItem,
    OptionsValidator,
    RangeConfigItem,
    RangeValidator,
    EnumSerializer,
    Theme
)

from loguru import logger
from pathlib import Path
from typing import Dict
import json


class Language(Enum):
    """Language enumeration."""
    AUTO = "Auto"
    ENGLISH = "en_US"
    JAPANESE = "ja_JP"

class Config(QConfig):
    """
    Configuration for the application.
    """

    # Theme Mode: Light, Dark, Auto
    themeMode = OptionsConfigItem(
        "General", "ThemeMode", Theme.AUTO, OptionsValidator(Theme), EnumSerializer(Theme), restart=False
    )

    # Language: Auto, English, Japanese
    language = OptionsConfigItem(
        "General", "Language", Language.AUTO, OptionsValidator(Language), EnumSerializer(Language), restart=True
    )

    # Layout form defaults
    defaultRows = RangeConfigItem("Design", "DefaultRows", 4, RangeValidator(1, 20))
    defaultColumns = RangeConfigItem("Design", "DefaultColumns", 4, RangeValidator(1, 20))
    defaultStrips = RangeConfigItem("Design", "DefaultStrips", 6, RangeValidator(1, 20))

    # Zero padding of auto-numbered plots, e.g. 2 -> P01
    plotNumberWidth = RangeConfigItem("Design", "PlotNumberWidth", 2, RangeValidator(1, 4))

    # Trial the exported design is attached to
    trialId = ConfigItem("Design", "TrialId", "standalone")


class Translator(QObject):
    """
    Manages application translations.
    """

    def __init__(self):
        super().__init__()
        logger.debug(f"Requested language from config: {cfg.get(cfg.language)}")
        self._current_language = self.get_language(cfg.get(cfg.language))
        logger.info(f"Current language from config: {self._current_language}")
        self._translations: Dict[Language, Dict[str, str]] = {}
        self._load_translations()

    def _load_translations(self):
        """Load all translation files from the resource directory."""
        locales_dir = Path(__file__).parent / "resource" / "i18n"
        if not locales_dir.exists():
            logger.error(f"Locales directory not found: {locales_dir}")
            return

        for file_path in locales_dir.glob("*.json"):
            try:
                # 'en_US' -> Language.ENGLISH
                lang = Language(file_path.stem)
                with open(file_path, "r", encoding="utf-8") as f:
                    self._translations[lang] = json.load(f)
                logger.debug(f"Loaded translations for: {lang.name}")
            except (ValueError, OSError) as e:
                logger.error(f"Failed to load translation {file_path}: {e}")

    def get_language(self, language: Language) -> Language:
        """Resolve ``Language.AUTO`` against the system locale."""
        if language == Language.AUTO:
            locale = QLocale.system().name()  # e.g. en_US, ja_JP
            if locale.startswith("ja"):
                return Language.JAPANESE
            return Language.ENGLISH
        return language

    def set_language(self, language: Language):
        if language == self._current_language:
            return
        self._current_language = self.get_language(language)
        logger.info(f"Language switched to: {self._current_language}")

    def tr(self, key: str) -> str:
        """
        Get translated string for the given key.

        If translation is missing for current language, falls back to English,
        then to the key itself.
        """
        result = self._translations.get(self._current_language, {}).get(key)
        if result is not None:
            return result

        if self._current_language != Language.ENGLISH:
            result = self._translations.get(Language.ENGLISH, {}).get(key)
            if result is not None:
                return result

        return key


cfg = Config()
qconfig.load('config.json', cfg)

# Global instance
translator = Translator()

def tr(key: str) -> str:
    """Helper function to translate a key using the global translator."""
    return translator.tr(key)
