"""Display theme preference kept beside the session token."""

from __future__ import annotations

from typing import Literal

from .local_storage import LocalStorage

THEME_KEY = "theme"

Theme = Literal["light", "dark"]


class ThemePreference:
    def __init__(self, storage: LocalStorage):
        self._storage = storage

    def get(self) -> Theme:
        return "dark" if self._storage.get(THEME_KEY) == "dark" else "light"

    def set(self, theme: Theme) -> None:
        if theme not in ("light", "dark"):
            raise ValueError(f"Unknown theme: {theme}")
        self._storage.set(THEME_KEY, theme)

    def toggle(self) -> Theme:
        theme: Theme = "light" if self.get() == "dark" else "dark"
        self.set(theme)
        return theme


__all__ = ["THEME_KEY", "Theme", "ThemePreference"]
