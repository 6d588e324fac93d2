"""Colour theme resolution for inkpage.

The browser decides between the light and dark theme on every page load.
The decision itself lives here as a pure function so it can be tested without
a browser; the inline script embedded in the layout applies the same rules.
"""

from __future__ import annotations

from typing import Literal

THEME_STORAGE_KEY = "theme"
DARK = "dark"
LIGHT = "light"

ThemeClass = Literal["dark", "light"]


def theme_class(preference: str | None, system_prefers_dark: bool) -> ThemeClass:
    """Return the theme class for the root element.

    An explicit stored preference wins; anything else (no preference,
    ``"system"``, an unknown value) follows the operating system.

    Args:
        preference: Value persisted under THEME_STORAGE_KEY, if any.
        system_prefers_dark: Whether ``prefers-color-scheme: dark`` matches.

    Returns:
        "dark" or "light".

    Examples:
        >>> theme_class("light", True)
        'light'

        >>> theme_class(None, True)
        'dark'
    """
    if preference == DARK:
        return DARK
    if preference == LIGHT:
        return LIGHT
    return DARK if system_prefers_dark else LIGHT


_SCRIPT_TEMPLATE = """(() => {{
  const stored = localStorage.getItem('{key}');
  const systemDark = window.matchMedia('(prefers-color-scheme: dark)').matches;
  const dark = stored === '{dark}' || (stored !== '{light}' && systemDark);
  document.documentElement.classList.toggle('{dark}', dark);
  window.toggleTheme = () => {{
    const next = document.documentElement.classList.toggle('{dark}') ? '{dark}' : '{light}';
    localStorage.setItem('{key}', next);
  }};
}})();"""


def theme_script() -> str:
    """Return the inline script that applies theme_class() in the browser."""
    return _SCRIPT_TEMPLATE.format(key=THEME_STORAGE_KEY, dark=DARK, light=LIGHT)
