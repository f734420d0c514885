# User Preferences
# Plain, unauthenticated preferences kept next to the vault records.
#
# Only the UI theme lives here. It is readable while the vault is locked
# and sits outside the vault's trust boundary: nothing in this module ever
# touches key material or ciphertext.

import logging

logger = logging.getLogger(__name__)

# Well-known preference keys
PREF_THEME = "theme"

THEMES = ("light", "dark")
DEFAULT_THEME = "light"


class UserPreferences:
    """Theme preference over a namespaced key/value store.

    Args:
        store: Any object with ``get(name)`` / ``set(name, value)``, normally
            the same ``KeyValueStore`` that holds the vault records.
    """

    def __init__(self, store):
        self.store = store

    def get_theme(self) -> str:
        """Return the stored theme, falling back to ``light``."""
        value = self.store.get(PREF_THEME)
        if value not in THEMES:
            if value is not None:
                logger.warning("Ignoring unknown theme preference %r", value)
            return DEFAULT_THEME
        return value

    def set_theme(self, theme: str) -> str:
        """Persist a theme. Raises ValueError for anything but light/dark."""
        if theme not in THEMES:
            raise ValueError(f"Unknown theme: {theme!r} (expected one of {', '.join(THEMES)})")
        self.store.set(PREF_THEME, theme)
        return theme
