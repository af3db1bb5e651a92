"""Unit tests for gadget.tui.fuzzy command ranking."""

from __future__ import annotations

from gadget.registry import CATALOG, CatalogEntry, categorized_catalog
from gadget.tui.fuzzy import filter_commands, score_entry, score_text


# ---------------------------------------------------------------------------
# score_text
# ---------------------------------------------------------------------------

class TestScoreText:
    def test_empty_query_scores_zero(self):
        assert score_text("screenshot", "") == 0

    def test_empty_text_scores_zero(self):
        assert score_text("", "abc") == 0

    def test_incomplete_subsequence_scores_zero(self):
        assert score_text("dpi", "dpx") == 0

    def test_out_of_order_scores_zero(self):
        assert score_text("dpi", "ipd") == 0

    def test_exact_match_value(self):
        # 3 chars, consecutive 5 + 10, word start 8, position 34, span bonus 0
        assert score_text("dpi", "dpi") == 87

    def test_consecutive_beats_scattered(self):
        assert score_text("screen record", "scr") > score_text("s c r", "scr")

    def test_word_start_bonus(self):
        # "r" after a separator earns the word-start bonus
        assert score_text("ab-rc", "r") > score_text("abxrc", "r")

    def test_earlier_match_scores_higher(self):
        assert score_text("wifi device", "wifi") > score_text("device wifi", "wifi")

    def test_is_deterministic(self):
        assert score_text("connect wifi device", "cwd") == score_text(
            "connect wifi device", "cwd"
        )


# ---------------------------------------------------------------------------
# score_entry
# ---------------------------------------------------------------------------

class TestScoreEntry:
    def test_name_match_gets_bonus(self):
        entry = CatalogEntry("x", "Font size", "Change scale", "Device settings")
        desc_only = CatalogEntry("y", "Other", "Font size", "Device settings")
        assert score_entry(entry, "font") > score_entry(desc_only, "font")

    def test_description_only_match_counts(self):
        entry = CatalogEntry("x", "DPI", "View or change device DPI", "Device settings")
        assert score_entry(entry, "view") > 0

    def test_query_is_case_insensitive(self):
        entry = CATALOG[0]
        assert score_entry(entry, "SCREEN") == score_entry(entry, "screen")


# ---------------------------------------------------------------------------
# filter_commands
# ---------------------------------------------------------------------------

class TestFilterCommands:
    def test_empty_query_returns_categorized_catalog(self):
        assert filter_commands("") == categorized_catalog(CATALOG)
        assert len(filter_commands("")) == 12

    def test_no_match_returns_empty(self):
        assert filter_commands("zzzz") == []

    def test_wifi_query_ranks_wifi_entries_first(self):
        ids = [entry.id for entry in filter_commands("wifi")]
        assert set(ids[:3]) == {"pair-wifi", "connect-wifi", "disconnect-wifi"}

    def test_results_sorted_by_descending_score(self):
        results = filter_commands("screen")
        scores = [score_entry(entry, "screen") for entry in results]
        assert scores == sorted(scores, reverse=True)
        assert all(score > 0 for score in scores)

    def test_ties_keep_catalog_order(self):
        catalog = (
            CatalogEntry("first", "Alpha", "same", "Media"),
            CatalogEntry("second", "Alpha", "same", "Media"),
        )
        assert [e.id for e in filter_commands("alpha", catalog)] == ["first", "second"]

    def test_name_matches_rank_above_description_matches(self):
        catalog = (
            CatalogEntry("density", "Display density", "Describes the screen", "Settings"),
            CatalogEntry("screenshot", "Screenshot", "Capture the screen", "Media"),
            CatalogEntry("screenshot-day-night", "Screenshot day-night", "Light and dark", "Media"),
            CatalogEntry("screen-record", "Screen record", "Record video", "Media"),
            CatalogEntry("screen-size", "Screen size", "Change resolution", "Settings"),
        )
        results = filter_commands("scr", catalog)
        ids = [entry.id for entry in results]
        assert set(ids[:4]) == {
            "screenshot", "screenshot-day-night", "screen-record", "screen-size",
        }
        assert ids[-1] == "density"
        name_scores = [score_entry(entry, "scr") for entry in results[:4]]
        assert min(name_scores) > score_entry(catalog[0], "scr")
        assert filter_commands("zzz", catalog) == []

    def test_results_are_subset_of_catalog(self):
        for query in ("e", "dev", "emu", "x"):
            assert all(entry in CATALOG for entry in filter_commands(query))
