"""Light/dark token tables and the store that switches between them."""

from __future__ import annotations

from collections.abc import Callable

THEMES: dict[str, dict[str, str]] = {
    "dark": {
        "background": "#0f172a",
        "card_background": "#1e293b",
        "border": "#334155",
        "text": "#ffffff",
        "text_secondary": "#94a3b8",
        "text_tertiary": "#64748b",
        "profit": "#10b981",
        "loss": "#ef4444",
        "profit_bg": "#10b98120",
        "loss_bg": "#ef444420",
        "tab_bar_background": "#1e293b",
        "tab_bar_border": "#334155",
        "tab_active": "#3b82f6",
        "tab_inactive": "#64748b",
        "header_background": "#1e293b",
    },
    "light": {
        "background": "#f8fafc",
        "card_background": "#ffffff",
        "border": "#e2e8f0",
        "text": "#0f172a",
        "text_secondary": "#475569",
        "text_tertiary": "#94a3b8",
        "profit": "#059669",
        "loss": "#dc2626",
        "profit_bg": "#d1fae5",
        "loss_bg": "#fee2e2",
        "tab_bar_background": "#ffffff",
        "tab_bar_border": "#e2e8f0",
        "tab_active": "#2563eb",
        "tab_inactive": "#94a3b8",
        "header_background": "#ffffff",
    },
}


class ThemeStore:
    """Application-scoped theme setting; ``toggle()`` is the only writer."""

    def __init__(self, dark: bool = True) -> None:
        self._dark = dark
        self._listeners: list[Callable[[dict[str, str]], None]] = []

    @property
    def is_dark(self) -> bool:
        return self._dark

    @property
    def name(self) -> str:
        return "dark" if self._dark else "light"

    @property
    def theme(self) -> dict[str, str]:
        return dict(THEMES[self.name])

    def toggle(self) -> dict[str, str]:
        self._dark = not self._dark
        theme = self.theme
        for listener in list(self._listeners):
            listener(theme)
        return theme

    def subscribe(self, listener: Callable[[dict[str, str]], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe
