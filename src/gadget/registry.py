"""Static command catalog shown in the interactive menu."""

from __future__ import annotations

from dataclasses import dataclass

CATEGORY_ORDER = ("Media", "Device settings", "WiFi", "Devices/emulators")


@dataclass(frozen=True)
class CatalogEntry:
    """A single menu command."""

    id: str
    name: str
    description: str
    category: str


@dataclass(frozen=True)
class CatalogCategory:
    name: str
    entries: tuple[CatalogEntry, ...]


CATALOG: tuple[CatalogEntry, ...] = (
    CatalogEntry("screenshot", "Screenshot", "Take a screenshot", "Media"),
    CatalogEntry(
        "screenshot-day-night",
        "Screenshot day-night",
        "Take screenshots in day and night mode",
        "Media",
    ),
    CatalogEntry("screen-record", "Screen record", "Record the screen", "Media"),
    CatalogEntry("change-dpi", "DPI", "View or change device DPI", "Device settings"),
    CatalogEntry(
        "change-font-size", "Font size", "View or change device font size", "Device settings"
    ),
    CatalogEntry(
        "change-screen-size",
        "Screen size",
        "View or change device screen size",
        "Device settings",
    ),
    CatalogEntry("pair-wifi", "Pair WiFi device", "Pair with a new WiFi device", "WiFi"),
    CatalogEntry("connect-wifi", "Connect WiFi device", "Connect to a WiFi device", "WiFi"),
    CatalogEntry(
        "disconnect-wifi", "Disconnect WiFi device", "Disconnect from a WiFi device", "WiFi"
    ),
    CatalogEntry(
        "launch-emulator", "Launch emulator", "Start an Android emulator", "Devices/emulators"
    ),
    CatalogEntry(
        "configure-emulator",
        "Configure emulator",
        "Edit emulator configuration",
        "Devices/emulators",
    ),
    CatalogEntry(
        "refresh-devices", "Refresh devices", "Refresh the device list", "Devices/emulators"
    ),
)

# Entries that run without a target device
DEVICELESS_COMMANDS = frozenset({
    "pair-wifi",
    "connect-wifi",
    "disconnect-wifi",
    "launch-emulator",
    "configure-emulator",
    "refresh-devices",
})


def catalog_categories(catalog: tuple[CatalogEntry, ...] = CATALOG) -> list[CatalogCategory]:
    """Group catalog entries by category in display order."""
    grouped: dict[str, list[CatalogEntry]] = {}
    for entry in catalog:
        grouped.setdefault(entry.category, []).append(entry)
    return [
        CatalogCategory(name=name, entries=tuple(grouped[name]))
        for name in CATEGORY_ORDER
        if name in grouped
    ]


def categorized_catalog(catalog: tuple[CatalogEntry, ...] = CATALOG) -> list[CatalogEntry]:
    """Return entries in the order the unfiltered menu shows them."""
    return [entry for category in catalog_categories(catalog) for entry in category.entries]


def find_entry(command_id: str) -> CatalogEntry | None:
    for entry in CATALOG:
        if entry.id == command_id:
            return entry
    return None


def command_ids() -> list[str]:
    return [entry.id for entry in CATALOG]
